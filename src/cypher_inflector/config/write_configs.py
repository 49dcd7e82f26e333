from pathlib import Path

from cypher_inflector.config.general import GeneralConfig


def write_default_configs(directory: Path = Path("config")) -> Path:
    """Write out config defaults, returning the file written."""
    path = (directory / "config.default.yaml").resolve()
    GeneralConfig.write_default(path)
    return path
