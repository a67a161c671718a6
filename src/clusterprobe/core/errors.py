"""Error taxonomy for classification and its collaborators."""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Why a raw metric could not be classified."""

    UNKNOWN_VALUE = "unknown_value"
    PARSE_INT = "parse_int"
    PARSE_FLOAT = "parse_float"


class ClassificationError(Exception):
    """A raw metric that no classification rule accepts.

    Attributes:
        key: Key of the offending raw metric.
        raw: Original value, kept for diagnostics.
        kind: Which rule rejected the value.
    """

    def __init__(self, key: str, raw: Any, kind: ErrorKind) -> None:
        self.key = key
        self.raw = raw
        self.kind = kind
        super().__init__(f"{kind.value} for key {key!r}: {raw!r}")


class FetchError(Exception):
    """Raised by fetchers when the upstream endpoint could not be read."""


class SinkError(Exception):
    """Raised by metric sinks when a classified metric could not be stored."""
