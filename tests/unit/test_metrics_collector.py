"""
Unit tests for MetricsCollector methods in observability/metrics.py.

Tests the individual methods of MetricsCollector to verify they call the
correct Prometheus metric objects with the correct label values.
"""

from unittest.mock import MagicMock, patch

import pytest

from keycloak_provisioner.observability.metrics import (
    MetricsCollector,
    get_metrics_registry,
    render_metrics,
)


@pytest.fixture
def collector():
    """Create a MetricsCollector with the registry init patched out."""
    with patch(
        "keycloak_provisioner.observability.metrics.get_metrics_registry",
        return_value=MagicMock(),
    ):
        return MetricsCollector()


class TestStepMetrics:
    """Test step outcome and duration recording."""

    @patch("keycloak_provisioner.observability.metrics.PROVISIONING_STEP_TOTAL")
    def test_record_step_outcome(self, mock_total, collector):
        collector.record_step_outcome("realm", "Created")
        mock_total.labels.assert_called_with(step="realm", outcome="Created")
        mock_total.labels().inc.assert_called_once()

    @pytest.mark.asyncio
    @patch("keycloak_provisioner.observability.metrics.PROVISIONING_STEP_DURATION")
    async def test_track_step_observes_duration(self, mock_duration, collector):
        async with collector.track_step("client"):
            pass

        mock_duration.labels.assert_called_with(step="client")
        mock_duration.labels().observe.assert_called_once()

    @pytest.mark.asyncio
    @patch("keycloak_provisioner.observability.metrics.PROVISIONING_STEP_DURATION")
    async def test_track_step_observes_duration_on_error(
        self, mock_duration, collector
    ):
        """Failed steps are timed too."""
        with pytest.raises(RuntimeError):
            async with collector.track_step("client"):
                raise RuntimeError("boom")

        mock_duration.labels().observe.assert_called_once()


class TestRunMetrics:
    """Test run and probe counters."""

    @patch("keycloak_provisioner.observability.metrics.PROVISIONING_RUNS_TOTAL")
    def test_record_run_success(self, mock_runs, collector):
        collector.record_run(True)
        mock_runs.labels.assert_called_with(result="success")

    @patch("keycloak_provisioner.observability.metrics.PROVISIONING_RUNS_TOTAL")
    def test_record_run_failure(self, mock_runs, collector):
        collector.record_run(False)
        mock_runs.labels.assert_called_with(result="error")

    @patch("keycloak_provisioner.observability.metrics.READINESS_PROBES_TOTAL")
    def test_record_probe(self, mock_probes, collector):
        collector.record_probe(False)
        mock_probes.labels.assert_called_with(result="unreachable")
        mock_probes.labels().inc.assert_called_once()


class TestRegistry:
    def test_render_includes_provisioner_metrics(self):
        MetricsCollector(get_metrics_registry()).record_run(True)

        output = render_metrics().decode()

        assert "keycloak_provisioner_runs_total" in output
