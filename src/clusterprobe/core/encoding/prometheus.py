"""Prometheus text exposition format (0.0.4) encoder."""

import math
from collections.abc import AsyncIterable, Iterable

from clusterprobe.core.models import MetricSample

_HISTOGRAM_SUFFIXES = ("_bucket", "_sum", "_count")


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = ",".join(
        f'{name}="{_escape_label_value(value)}"'
        for name, value in sorted(labels.items())
    )
    return "{" + pairs + "}"


def _family(name: str, histograms: set[str]) -> tuple[str, str]:
    """Return the family name and TYPE of a sample name."""
    for suffix in _HISTOGRAM_SUFFIXES:
        base = name.removesuffix(suffix)
        if base != name and base in histograms:
            return base, "histogram"
    return name, "gauge"


def encode_metrics(samples: Iterable[MetricSample]) -> str:
    """Encode metric samples in Prometheus text format.

    Samples sharing a family are grouped under a single ``# TYPE`` line.
    A family is a histogram when it has ``_bucket`` samples.

    Args:
        samples: An iterable of MetricSample objects.

    Returns:
        Prometheus text body. Empty string if no samples.
    """
    samples = list(samples)
    histograms = {
        s.name.removesuffix("_bucket")
        for s in samples
        if s.name.endswith("_bucket") and "le" in s.labels
    }

    families: dict[str, tuple[str, list[MetricSample]]] = {}
    for sample in samples:
        family, kind = _family(sample.name, histograms)
        families.setdefault(family, (kind, []))[1].append(sample)

    lines: list[str] = []
    for family in sorted(families):
        kind, members = families[family]
        lines.append(f"# TYPE {family} {kind}")
        for sample in members:
            lines.append(
                f"{sample.name}{_format_labels(sample.labels)} "
                f"{_format_value(sample.value)}"
            )

    if not lines:
        return ""

    return "\n".join(lines) + "\n"


async def encode_current(samples: AsyncIterable[MetricSample]) -> str:
    """Collect an async iterable of samples and encode it."""
    return encode_metrics([s async for s in samples])
