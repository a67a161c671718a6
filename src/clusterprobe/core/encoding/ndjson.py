"""NDJSON encoder for metric samples."""

import json
from collections.abc import AsyncIterable

from clusterprobe.core.models import MetricSample


async def encode_ndjson(samples: AsyncIterable[MetricSample]) -> str:
    """Encode metric samples to newline-delimited JSON.

    Args:
        samples: An async iterable of MetricSample objects.

    Returns:
        NDJSON string with one JSON object per line.
        Empty string if no samples.
    """
    lines = []
    async for sample in samples:
        obj = {
            "name": sample.name,
            "timestamp": sample.timestamp,
            "value": sample.value,
            "labels": sample.labels,
        }
        lines.append(json.dumps(obj))

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
