from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, SecretStr

from cypher_inflector.utils.general import CommentedSettings, Singleton


def test_singleton() -> None:
    """Test that singleton behavior is correct."""

    class TestClass(metaclass=Singleton):
        some_data: str = ":3"

    a = TestClass()
    b = TestClass()

    assert a is b


class Inner(BaseModel):
    token: SecretStr = SecretStr("hunter2")
    names: tuple[str, ...] = ("a", "b")


class ExampleSettings(CommentedSettings):
    retries: Annotated[int, Field(description="How many times to try.")] = 3
    inner: Inner = Inner()


def test_to_yaml_value_unwraps_models_and_secrets() -> None:
    value = CommentedSettings.to_yaml_value(Inner())

    assert value == {"token": "hunter2", "names": ["a", "b"]}


def test_to_yaml_value_stringifies_unknowns() -> None:
    assert CommentedSettings.to_yaml_value(Path("x/y")) == "x/y"


def test_write_default_comments_fields(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "defaults.yaml"

    ExampleSettings.write_default(path)

    text = path.read_text()
    assert "retries: 3" in text
    assert "# How many times to try." in text
    assert "token: hunter2" in text
    assert "Managed by cypher-inflector." in text
