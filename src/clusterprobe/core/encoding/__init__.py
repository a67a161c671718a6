"""Encoders for exposing stored metric samples."""

from clusterprobe.core.encoding.ndjson import encode_ndjson
from clusterprobe.core.encoding.prometheus import encode_current, encode_metrics

__all__ = ["encode_current", "encode_metrics", "encode_ndjson"]
