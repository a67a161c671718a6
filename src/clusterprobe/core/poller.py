"""Per-subsystem polling loop: fetch, classify, forward, instrument."""

import asyncio
import logging
import random
import time

from clusterprobe.core.classify import classify
from clusterprobe.core.errors import ClassificationError
from clusterprobe.core.models import RawMetric, SubsystemConfig
from clusterprobe.core.ports import DurationObserver, Fetcher, MetricSink
from clusterprobe.core.scheduling import (
    Clock,
    FixedRateTicker,
    Sleep,
    startup_jitter,
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_JITTER = 5.0


class SubsystemPoller:
    """Drives the periodic fetch/classify/emit cycle of one subsystem.

    Instances are independent: each one owns its fetcher, sink and
    configuration and is run as its own task. Every failure is contained in
    the cycle (fetch errors) or metric (classification and sink errors) in
    which it happened.
    """

    def __init__(
        self,
        subsystem: str,
        fetcher: Fetcher,
        sink: MetricSink,
        config: SubsystemConfig,
        *,
        histogram: DurationObserver | None = None,
        cluster_name: str = "",
        default_interval: float = DEFAULT_POLL_INTERVAL,
        max_jitter: float = DEFAULT_MAX_JITTER,
        rng: random.Random | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the poller and configure its sink.

        Args:
            subsystem: Subsystem name, e.g. "_cat/health".
            fetcher: Reads raw metrics for this subsystem.
            sink: Receives classified metrics.
            config: Interval and label configuration for this subsystem.
            histogram: Shared cycle-duration instrumentation (optional).
            cluster_name: Cluster label attached to the duration histogram.
            default_interval: Poll period used when config has none.
            max_jitter: Upper bound of the random startup delay in seconds.
            rng: Random source for the startup jitter.
            clock: Monotonic clock used for scheduling and timing.
            sleep: Coroutine function used to wait.
        """
        self.subsystem = subsystem
        self.config = config
        self._fetcher = fetcher
        self._sink = sink
        self._histogram = histogram
        self._cluster_name = cluster_name
        self._default_interval = default_interval
        self._max_jitter = max_jitter
        self._rng = rng
        self._clock = clock
        self._sleep = sleep

        sink.set_const_labels(config.const_labels)
        sink.set_skip_labels(config.skip_labels)
        sink.set_skip_metrics(config.skip_metrics)
        sink.set_include_labels(config.include_labels)

    @property
    def interval(self) -> float:
        """Effective poll period in seconds."""
        if self.config.poll_interval is None:
            return self._default_interval
        return self.config.poll_interval

    @property
    def endpoint(self) -> str:
        """Endpoint path label used for instrumentation."""
        return f"/{self.subsystem.lstrip('/')}"

    async def run(self) -> None:
        """Poll forever on a jittered fixed-rate schedule.

        Never returns under normal operation. Cancelling the task stops the
        loop; there is no state to flush.
        """
        delay = startup_jitter(self._max_jitter, self._rng)
        ticker = FixedRateTicker(
            self.interval, self._clock() + delay, self._clock, self._sleep
        )
        logger.info(
            "Starting subsystem: %s with poll interval: %.3fs",
            self.subsystem,
            self.interval,
            extra={"subsystem": self.subsystem},
        )
        while True:
            await ticker.tick()
            await self.run_once()

    async def run_once(self) -> int:
        """Run a single fetch/classify/emit cycle.

        Returns:
            Number of metrics forwarded to the sink.
        """
        started = self._clock()
        try:
            return await self._cycle()
        finally:
            await self._observe(self._clock() - started)

    async def _cycle(self) -> int:
        # Materialize inside the try so a failing generator fails the fetch
        try:
            metrics = [
                raw
                for raw in await self._fetcher.fetch()
                if self._is_raw_metric(raw)
            ]
        except Exception as e:
            logger.error(
                "poll %s metrics err %s",
                self.subsystem,
                e,
                extra={"subsystem": self.subsystem},
            )
            return 0

        forwarded = 0
        for raw in metrics:
            try:
                metric = classify(raw.key, raw.value)
            except ClassificationError as e:
                logger.warning(
                    "skipping %s metric %s: %s",
                    self.subsystem,
                    raw.key,
                    e,
                    extra={"subsystem": self.subsystem, "key": raw.key},
                )
                continue
            try:
                await self._sink.collect(metric, raw.key, raw.labels)
            except Exception as e:
                logger.debug(
                    "collect %s metric %s err %s",
                    self.subsystem,
                    raw.key,
                    e,
                    extra={"subsystem": self.subsystem, "key": raw.key},
                )
            forwarded += 1
        return forwarded

    def _is_raw_metric(self, item: object) -> bool:
        if isinstance(item, RawMetric):
            return True
        logger.warning(
            "skipping %s item %r: not a raw metric",
            self.subsystem,
            item,
            extra={"subsystem": self.subsystem},
        )
        return False

    async def _observe(self, seconds: float) -> None:
        if self._histogram is None:
            return
        labels = {"endpoint": self.endpoint, "cluster": self._cluster_name}
        try:
            await self._histogram.observe(labels, seconds)
        except Exception as e:
            logger.debug(
                "observe %s duration err %s",
                self.subsystem,
                e,
                extra={"subsystem": self.subsystem},
            )
