"""BDD step definitions for classification and polling features."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from clusterprobe.adapters.collection import Collection, sanitize_name
from clusterprobe.adapters.storage.in_memory import InMemoryMetricsStorage
from clusterprobe.core.classify import classify
from clusterprobe.core.errors import ClassificationError
from clusterprobe.core.models import (
    Bytes,
    Gauge,
    GaugeF,
    Label,
    MetricSample,
    MetricType,
    Null,
    RawMetric,
    SubsystemConfig,
    Switch,
    Time,
)
from clusterprobe.core.poller import SubsystemPoller
from tests.fakes import FailingFetcher, StaticFetcher

VARIANTS: dict[str, Any] = {
    "Bytes": lambda payload: Bytes(int(payload)),
    "Time": lambda payload: Time(int(payload)),
    "Gauge": lambda payload: Gauge(int(payload)),
    "GaugeF": lambda payload: GaugeF(float(payload)),
    "Switch": lambda payload: Switch(int(payload)),
    "Label": lambda payload: Label(payload),
}


@dataclass
class ClassificationContext:
    """Shared state between steps in a scenario."""

    raw: RawMetric | None = None
    result: MetricType | None = None
    error: ClassificationError | None = None
    subsystem: str = ""
    batch: list[RawMetric] = field(default_factory=list)
    endpoint_down: bool = False
    skip_metrics: set[str] = field(default_factory=set)
    storage: InMemoryMetricsStorage = field(default_factory=InMemoryMetricsStorage)
    forwarded: int | None = None


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


async def read_metrics(storage: InMemoryMetricsStorage) -> list[MetricSample]:
    """Read all current samples from storage."""
    return [sample async for sample in storage.scrape()]


@pytest.fixture
def ctx() -> ClassificationContext:
    """Fresh scenario context for each test."""
    return ClassificationContext()


# === Classification ===


@given(parsers.parse('a raw metric "{key}" with value "{value}"'))
def given_string_metric(ctx: ClassificationContext, key: str, value: str) -> None:
    ctx.raw = RawMetric(key, value)


@given(parsers.parse('a raw metric "{key}" with integer {value:d}'))
def given_integer_metric(ctx: ClassificationContext, key: str, value: int) -> None:
    ctx.raw = RawMetric(key, value)


@given(parsers.parse('a raw metric "{key}" with boolean {value}'))
def given_boolean_metric(ctx: ClassificationContext, key: str, value: str) -> None:
    ctx.raw = RawMetric(key, value == "true")


@given(parsers.parse('a raw metric "{key}" with a null value'))
def given_null_metric(ctx: ClassificationContext, key: str) -> None:
    ctx.raw = RawMetric(key, None)


@when("the metric is classified")
def when_classified(ctx: ClassificationContext) -> None:
    assert ctx.raw is not None
    try:
        ctx.result = classify(ctx.raw.key, ctx.raw.value)
    except ClassificationError as e:
        ctx.error = e


@then(parsers.parse("the result is {variant} {payload}"))
def then_result_is(ctx: ClassificationContext, variant: str, payload: str) -> None:
    assert ctx.error is None
    assert ctx.result == VARIANTS[variant](payload)


@then("the result is Null")
def then_result_is_null(ctx: ClassificationContext) -> None:
    assert ctx.error is None
    assert ctx.result == Null()


@then(parsers.parse('classification fails with "{kind}"'))
def then_classification_fails(ctx: ClassificationContext, kind: str) -> None:
    assert ctx.result is None
    assert ctx.error is not None
    assert ctx.error.kind.value == kind
    assert ctx.error.key == ctx.raw.key


# === Polling ===


@given(parsers.parse('a subsystem "{subsystem}" reporting "{key}" as "{value}"'))
def given_subsystem_reporting(
    ctx: ClassificationContext, subsystem: str, key: str, value: str
) -> None:
    ctx.subsystem = subsystem
    ctx.batch.append(RawMetric(key, value))


@given(parsers.parse('the subsystem also reports "{key}" as "{value}"'))
def given_subsystem_also_reports(
    ctx: ClassificationContext, key: str, value: str
) -> None:
    ctx.batch.append(RawMetric(key, value))


@given(parsers.parse('a subsystem "{subsystem}" whose endpoint is down'))
def given_subsystem_down(ctx: ClassificationContext, subsystem: str) -> None:
    ctx.subsystem = subsystem
    ctx.endpoint_down = True


@given(parsers.parse('metric "{key}" is skipped'))
def given_metric_skipped(ctx: ClassificationContext, key: str) -> None:
    ctx.skip_metrics.add(key)


@when("one poll cycle runs")
def when_one_cycle_runs(
    ctx: ClassificationContext, caplog: pytest.LogCaptureFixture
) -> None:
    fetcher = (
        FailingFetcher(failures=1) if ctx.endpoint_down else StaticFetcher(ctx.batch)
    )
    poller = SubsystemPoller(
        ctx.subsystem,
        fetcher,
        Collection(ctx.subsystem, ctx.storage),
        SubsystemConfig(skip_metrics=frozenset(ctx.skip_metrics)),
    )
    caplog.set_level(logging.WARNING, logger="clusterprobe")
    ctx.forwarded = run_async(poller.run_once())


@then(parsers.parse("{n:d} metrics are forwarded"))
def then_n_forwarded(ctx: ClassificationContext, n: int) -> None:
    assert ctx.forwarded == n


def _exported_keys(ctx: ClassificationContext) -> set[str]:
    prefix = f"clusterprobe_{sanitize_name(ctx.subsystem)}_"
    samples = run_async(read_metrics(ctx.storage))
    return {
        s.name.removeprefix(prefix).removesuffix("_info").removesuffix("_bytes")
        for s in samples
    }


@then(parsers.parse('"{key}" is not exported'))
def then_not_exported(ctx: ClassificationContext, key: str) -> None:
    assert key not in _exported_keys(ctx)


@then(parsers.parse('"{key}" is exported'))
def then_exported(ctx: ClassificationContext, key: str) -> None:
    assert key in _exported_keys(ctx)


@then(parsers.parse('an error mentioning "{text}" is logged'))
def then_error_logged(caplog: pytest.LogCaptureFixture, text: str) -> None:
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert any(text in r.getMessage() for r in errors)
