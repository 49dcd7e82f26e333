from collections.abc import Mapping, Sequence
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator


class ErrorDetail(BaseModel):
    """Basic FastAPI error response body."""

    detail: str


LogLevel = Annotated[
    Literal[
        "TRACE",
        "DEBUG",
        "INFO",
        "SUCCESS",
        "WARNING",
        "ERROR",
        "CRITICAL",
    ],
    BeforeValidator(lambda a: str(a).upper()),
]

# Request parameters as received: name -> ordered raw values
ParameterMap = Mapping[str, Sequence[str]]

# A single resolved value, or the ordered list of them for multi-valued parameters
FlattenedValue = str | list[str]

FlattenedParameters = dict[str, FlattenedValue]
