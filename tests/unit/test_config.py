"""Tests for ExporterOptions."""

import pytest

from clusterprobe.config import ExporterOptions
from clusterprobe.core.models import SubsystemConfig
from clusterprobe.core.poller import DEFAULT_MAX_JITTER, DEFAULT_POLL_INTERVAL

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestDefaults:
    """Tests for default option values."""

    def test_defaults(self) -> None:
        options = ExporterOptions()

        assert options.namespace == "clusterprobe"
        assert options.poll_default_interval == DEFAULT_POLL_INTERVAL
        assert options.max_startup_jitter == DEFAULT_MAX_JITTER
        assert options.poll_intervals == {}

    def test_subsystem_without_overrides(self) -> None:
        assert ExporterOptions().subsystem_config("_cat/health") == SubsystemConfig()


class TestValidation:
    """Invalid values are rejected at construction."""

    @pytest.mark.parametrize("interval", [0, -1.0])
    def test_rejects_non_positive_default_interval(self, interval: float) -> None:
        with pytest.raises(ValueError, match="poll_default_interval"):
            ExporterOptions(poll_default_interval=interval)

    def test_rejects_non_positive_subsystem_interval(self) -> None:
        with pytest.raises(ValueError, match="_cat/health"):
            ExporterOptions(poll_intervals={"_cat/health": 0})

    def test_rejects_negative_jitter(self) -> None:
        with pytest.raises(ValueError, match="max_startup_jitter"):
            ExporterOptions(max_startup_jitter=-0.5)

    def test_zero_jitter_is_allowed(self) -> None:
        assert ExporterOptions(max_startup_jitter=0).max_startup_jitter == 0


class TestSubsystemConfig:
    """Tests for ExporterOptions.subsystem_config()."""

    def test_resolves_per_subsystem_values(self) -> None:
        options = ExporterOptions(
            poll_intervals={"_nodes/stats": 30.0},
            skip_labels={"_nodes/stats": frozenset({"ip"})},
            skip_metrics={"_nodes/stats": frozenset({"pid"})},
            include_labels={"_nodes/stats": frozenset({"node"})},
            const_labels={"env": "prod"},
        )

        config = options.subsystem_config("_nodes/stats")

        assert config == SubsystemConfig(
            poll_interval=30.0,
            skip_labels=frozenset({"ip"}),
            skip_metrics=frozenset({"pid"}),
            include_labels=frozenset({"node"}),
            const_labels={"env": "prod"},
        )

    def test_other_subsystems_keep_defaults(self) -> None:
        options = ExporterOptions(poll_intervals={"_nodes/stats": 30.0})

        assert options.subsystem_config("_cat/health").poll_interval is None

    def test_const_labels_are_copied(self) -> None:
        options = ExporterOptions(const_labels={"env": "prod"})

        config = options.subsystem_config("_cat/health")
        config.const_labels["env"] = "dev"

        assert options.const_labels == {"env": "prod"}


class TestFromMapping:
    """Tests for ExporterOptions.from_mapping()."""

    def test_coerces_parsed_document(self) -> None:
        options = ExporterOptions.from_mapping(
            {
                "namespace": "es",
                "cluster_name": "prod",
                "poll_default_interval": 10,
                "poll_intervals": {"_cat/indices": "60"},
                "skip_labels": {"_cat/indices": ["uuid"]},
                "const_labels": {"dc": 1},
                "max_startup_jitter": "2.5",
            }
        )

        assert options.namespace == "es"
        assert options.poll_default_interval == 10.0
        assert options.poll_intervals == {"_cat/indices": 60.0}
        assert options.skip_labels == {"_cat/indices": frozenset({"uuid"})}
        assert options.const_labels == {"dc": "1"}
        assert options.max_startup_jitter == 2.5

    def test_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="unknown exporter options: poll_rate"):
            ExporterOptions.from_mapping({"poll_rate": 5})

    def test_validates_values(self) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            ExporterOptions.from_mapping({"poll_intervals": {"_cat/health": -1}})

    def test_empty_mapping(self) -> None:
        assert ExporterOptions.from_mapping({}) == ExporterOptions()
