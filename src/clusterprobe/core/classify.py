"""Classification of raw telemetry leaves into typed metrics.

The classifier maps a ``(key, value)`` pair to a MetricType. Booleans and
nulls are checked before the key vocabularies. Byte, time and label keys win
over the generic numeric rule; everything else is dispatched through a static
key table.
"""

import logging
import re
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from clusterprobe.core.errors import ClassificationError, ErrorKind
from clusterprobe.core.models import (
    Bytes,
    Gauge,
    GaugeF,
    Label,
    MetricType,
    Null,
    Switch,
    Time,
)

logger = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


class KeyRule(Enum):
    """Classification rule selected by a key."""

    BYTES = "bytes"
    TIME = "time"
    SWITCH = "switch"
    DATA = "data"
    GAUGE = "gauge"
    GAUGE_F = "gauge_f"
    LABEL = "label"


BYTE_KEYS = frozenset({"size", "memory", "store", "bytes"})

TIME_KEYS = frozenset({"epoch", "timestamp", "date", "time", "millis", "alive"})

# "out" comes from timed_out
SWITCH_KEYS = frozenset(
    {"out", "value", "committed", "searchable", "compound", "throttled"}
)

# Numeric byte-path id on _cat/health, filesystem path on _cat/shards
DATA_KEYS = frozenset({"data"})

GAUGE_KEYS = frozenset(
    {
        "primaries",
        "min",
        "max",
        "successful",
        "nodes",
        "fetch",
        "order",
        "largest",
        "rejected",
        "completed",
        "queue",
        "active",
        "core",
        "tasks",
        "relo",
        "unassign",
        "init",
        "files",
        "ops",
        "recovered",
        "generation",
        "contexts",
        "listeners",
        "pri",
        "rep",
        "docs",
        "count",
        "pid",
        "compilations",
        "deleted",
        "shards",
        "indices",
        "checkpoint",
        "avail",
        "used",
        "cpu",
        "triggered",
        "evictions",
        "failed",
        "total",
        "current",
    }
)

FLOAT_KEYS = frozenset({"avg", "1m", "5m", "15m", "number", "percent"})

LABEL_KEYS = frozenset(
    {
        "cluster",
        "repository",
        "snapshot",
        "stage",
        "uuid",
        "component",
        "master",
        "role",
        "uptime",
        "alias",
        "filter",
        "search",
        "flavor",
        "string",
        "address",
        "health",
        "build",
        "node",
        "state",
        "patterns",
        "of",
        "segment",
        "host",
        "ip",
        "prirep",
        "id",
        "status",
        "at",
        "for",
        "details",
        "reason",
        "port",
        "attr",
        "field",
        "shard",
        "index",
        "name",
        "type",
        "version",
        "jdk",
        "description",
    }
)


def _build_key_rules() -> Mapping[str, KeyRule]:
    """Compile the key vocabularies into a single lookup table.

    Raises:
        ValueError: If a key appears in more than one vocabulary.
    """
    vocabularies = (
        (BYTE_KEYS, KeyRule.BYTES),
        (TIME_KEYS, KeyRule.TIME),
        (SWITCH_KEYS, KeyRule.SWITCH),
        (DATA_KEYS, KeyRule.DATA),
        (GAUGE_KEYS, KeyRule.GAUGE),
        (FLOAT_KEYS, KeyRule.GAUGE_F),
        (LABEL_KEYS, KeyRule.LABEL),
    )
    rules: dict[str, KeyRule] = {}
    for keys, rule in vocabularies:
        for key in keys:
            if key in rules:
                raise ValueError(
                    f"key {key!r} mapped to both {rules[key].value} and {rule.value}"
                )
            rules[key] = rule
    return MappingProxyType(rules)


KEY_RULES: Mapping[str, KeyRule] = _build_key_rules()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_int(key: str, value: Any) -> int:
    """Parse a raw value as a signed 64-bit integer.

    Numbers are truncated toward zero; strings must consist of an optional
    sign followed by ASCII digits.

    Raises:
        ClassificationError: PARSE_INT for unparsable numbers and strings,
            UNKNOWN_VALUE for values that are neither.
    """
    if _is_number(value):
        try:
            number = int(value)
        except (OverflowError, ValueError) as exc:
            raise ClassificationError(key, value, ErrorKind.PARSE_INT) from exc
    elif isinstance(value, str):
        if not _INT_PATTERN.fullmatch(value):
            raise ClassificationError(key, value, ErrorKind.PARSE_INT)
        number = int(value)
    else:
        raise ClassificationError(key, value, ErrorKind.UNKNOWN_VALUE)

    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ClassificationError(key, value, ErrorKind.PARSE_INT)
    return number


def parse_float(key: str, value: Any) -> float:
    """Parse a raw value as a float, ignoring any ``%`` characters.

    Raises:
        ClassificationError: PARSE_FLOAT for unparsable strings,
            UNKNOWN_VALUE for values that are neither string nor float.
    """
    if isinstance(value, float):
        return value
    if not isinstance(value, str):
        raise ClassificationError(key, value, ErrorKind.UNKNOWN_VALUE)

    text = value.replace("%", "")
    # float() tolerates padding and digit separators, upstream never sends them
    if text != text.strip() or "_" in text:
        raise ClassificationError(key, value, ErrorKind.PARSE_FLOAT)
    try:
        return float(text)
    except ValueError as exc:
        raise ClassificationError(key, value, ErrorKind.PARSE_FLOAT) from exc


def parse_millis_lenient(key: str, value: Any) -> int:
    """Parse a time value in milliseconds, degrading to 0 when unparsable.

    Time fields are the only ones that never fail classification: noisy or
    placeholder timestamps become a zero duration instead of an error.
    Negative values are clamped to 0.
    """
    try:
        return max(parse_int(key, value), 0)
    except ClassificationError:
        return 0


def _as_label(key: str, value: Any) -> Label:
    if not isinstance(value, str):
        raise ClassificationError(key, value, ErrorKind.UNKNOWN_VALUE)
    return Label(value)


def _log_catch_all(key: str, value: Any) -> None:
    """Debug hook for keys missing from every vocabulary. Log only."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("catch-all metric %s=%r", key, value, extra={"key": key})
    if isinstance(value, str) and _INT_PATTERN.fullmatch(value):
        logger.debug(
            "unhandled numeric metric value %s=%r", key, value, extra={"key": key}
        )


def classify(key: str, value: Any) -> MetricType:
    """Classify a raw ``(key, value)`` pair.

    Args:
        key: Leaf key of the flattened telemetry.
        value: JSON scalar value.

    Returns:
        Exactly one MetricType variant.

    Raises:
        ClassificationError: If the value cannot be interpreted under the
            rule its key selects.
    """
    if isinstance(value, bool):
        return Switch(1 if value else 0)

    if value is None:
        return Null()

    rule = KEY_RULES.get(key)

    if rule is KeyRule.BYTES:
        return Bytes(parse_int(key, value))
    if rule is KeyRule.TIME:
        return Time(millis=parse_millis_lenient(key, value))
    # Label keys never carry samples, a number there is malformed input.
    if rule is KeyRule.LABEL:
        return _as_label(key, value)

    if _is_number(value):
        if isinstance(value, int):
            if _INT64_MIN <= value <= _INT64_MAX:
                return Gauge(value)
            try:
                return GaugeF(float(value))
            except OverflowError as exc:
                raise ClassificationError(key, value, ErrorKind.PARSE_FLOAT) from exc
        return GaugeF(value)

    if rule is KeyRule.SWITCH:
        # Booleans were handled above, so any other scalar reads as false.
        return Switch(0)
    if rule is KeyRule.DATA:
        try:
            return Gauge(parse_int(key, value))
        except ClassificationError:
            return _as_label(key, value)
    if rule is KeyRule.GAUGE:
        return Gauge(parse_int(key, value))
    if rule is KeyRule.GAUGE_F:
        return GaugeF(parse_float(key, value))

    _log_catch_all(key, value)
    return _as_label(key, value)
