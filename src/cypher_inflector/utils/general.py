from abc import ABCMeta
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, ClassVar

from typing_extensions import override

from pydantic import BaseModel, Secret, SecretBytes, SecretStr
from pydantic_core import PydanticUndefinedType
from pydantic_settings import BaseSettings
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

yaml = YAML()


class Singleton(ABCMeta):
    """Singleton metaclass that ensures classes using it have only one instance."""

    _instances: ClassVar[dict["Singleton", "Singleton"]] = {}

    @override
    def __call__(cls, *args: Any, **kwargs: Any) -> "Singleton":
        """Ensure calls go to one instance."""
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)  # noqa:UP008
        return cls._instances[cls]


class CommentedSettings(BaseSettings):
    """Pydantic BaseSettings which can dump its defaults as commented yaml."""

    @staticmethod
    def to_yaml_value(obj: Any) -> Any:
        """Recursively turn a settings value into something ruamel can dump."""
        if isinstance(obj, BaseModel):
            return CommentedSettings.to_commented(obj)
        if isinstance(obj, Secret | SecretStr | SecretBytes):
            return CommentedSettings.to_yaml_value(obj.get_secret_value())  # pyright:ignore[reportUnknownMemberType]
        if isinstance(obj, None | int | float | bool | str):
            return obj
        if isinstance(obj, Mapping):
            return {
                str(key): CommentedSettings.to_yaml_value(value)  # pyright:ignore[reportUnknownArgumentType]
                for key, value in obj.items()  # pyright:ignore[reportUnknownVariableType]
            }
        if isinstance(obj, Iterable):
            return [CommentedSettings.to_yaml_value(o) for o in obj]  # pyright:ignore[reportUnknownVariableType]
        return str(obj)

    @staticmethod
    def to_commented(obj: BaseModel | type[BaseModel]) -> CommentedMap:
        """Populate a commented mapping from a model instance or class defaults."""
        commented = CommentedMap()
        model_cls = obj if isinstance(obj, type) else type(obj)
        for name, field in model_cls.model_fields.items():
            if isinstance(obj, BaseModel):
                value = getattr(obj, name)
            else:
                value = (
                    field.default_factory()  # pyright:ignore[reportCallIssue] No settings factory takes validated data
                    if field.default_factory
                    else field.default
                )
                if isinstance(value, PydanticUndefinedType):
                    continue

            commented[name] = CommentedSettings.to_yaml_value(value)
            if field.description:
                commented.yaml_add_eol_comment(comment=field.description, key=name)  # pyright:ignore[reportUnknownMemberType]

        return commented

    @classmethod
    def write_default(cls, path: Path) -> None:
        """Write the settings defaults to a given path."""
        start_comment = "\n".join(
            [
                "Default configuration values.",
                "Managed by cypher-inflector.",
                "Don't edit this file, it will be overwritten.",
                "Edit config/config.yaml instead.",
            ]
        )
        commented = CommentedSettings.to_commented(cls)

        commented.yaml_set_start_comment(start_comment)  # pyright:ignore[reportUnknownMemberType] ruamel uses unknowns
        path.parent.mkdir(parents=True, exist_ok=True)
        yaml.dump(commented, path)  # pyright:ignore[reportUnknownMemberType] ruamel uses unknowns
