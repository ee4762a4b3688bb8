"""
Unit tests for OpenTelemetry tracing module.

Note: OpenTelemetry has global state that can only be set once per process.
Tests that need to capture spans use a module-scoped tracer provider,
while tests that exercise the setup patch the exporter and provider.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from keycloak_provisioner.errors import SecError
from keycloak_provisioner.models.results import ReconciliationOutcome, StepResult
from keycloak_provisioner.observability.tracing import (
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)
from keycloak_provisioner.services.base_reconciler import BaseReconciler
from keycloak_provisioner.utils.keycloak_admin import KeycloakAdminError


@pytest.fixture(scope="module")
def module_in_memory_exporter():
    """Module-scoped in-memory span exporter for testing."""
    return InMemorySpanExporter()


@pytest.fixture(scope="module")
def module_tracer_provider(module_in_memory_exporter):
    """Module-scoped tracer provider - set once for all tests in this module."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(module_in_memory_exporter))
    trace.set_tracer_provider(provider)
    return provider


@pytest.fixture(autouse=True)
def reset_tracing_state():
    """Reset tracing module state before and after each test."""
    import keycloak_provisioner.observability.tracing as tracing_module

    tracing_module._initialized = False
    tracing_module._tracer_provider = None
    yield
    tracing_module._initialized = False
    tracing_module._tracer_provider = None


@pytest.fixture
def clear_spans(module_tracer_provider, module_in_memory_exporter):
    """Clear spans before each test that uses the module exporter."""
    module_in_memory_exporter.clear()
    yield module_in_memory_exporter
    module_in_memory_exporter.clear()


class TestSetupTracing:
    """Test setup_tracing function."""

    def test_disabled_returns_none(self):
        assert setup_tracing(enabled=False) is None

    def test_enabled_installs_provider_and_instruments_httpx(self):
        with (
            patch(
                "keycloak_provisioner.observability.tracing.OTLPSpanExporter"
            ) as exporter,
            patch(
                "keycloak_provisioner.observability.tracing.HTTPXClientInstrumentor"
            ) as instrumentor,
            patch(
                "keycloak_provisioner.observability.tracing.trace.set_tracer_provider"
            ) as set_provider,
        ):
            provider = setup_tracing(
                enabled=True, endpoint="http://collector:4317", service_name="svc"
            )

        assert isinstance(provider, TracerProvider)
        exporter.assert_called_once_with(endpoint="http://collector:4317", insecure=True)
        set_provider.assert_called_once_with(provider)
        instrumentor.return_value.instrument.assert_called_once()

    def test_second_call_is_a_no_op(self):
        with patch(
            "keycloak_provisioner.observability.tracing.OTLPSpanExporter"
        ) as exporter:
            setup_tracing(enabled=False)
            setup_tracing(enabled=True)

        exporter.assert_not_called()

    def test_shutdown_flushes_provider(self):
        import keycloak_provisioner.observability.tracing as tracing_module

        provider = MagicMock()
        tracing_module._tracer_provider = provider

        shutdown_tracing()

        provider.shutdown.assert_called_once()
        assert tracing_module._tracer_provider is None


class TestStepSpans:
    """Test the spans BaseReconciler.run_step emits."""

    @staticmethod
    def _reconciler() -> BaseReconciler:
        return BaseReconciler(logger=MagicMock(), metrics=MagicMock())

    @pytest.mark.asyncio
    async def test_successful_step_span(self, clear_spans):
        step = AsyncMock(
            return_value=StepResult("realm", ReconciliationOutcome.CREATED)
        )

        await self._reconciler().run_step("realm", step)

        (span,) = clear_spans.get_finished_spans()
        assert span.name == "provision.realm"
        assert span.attributes["provisioning.step"] == "realm"
        assert span.attributes["provisioning.outcome"] == "Created"

    @pytest.mark.asyncio
    async def test_failed_step_span_records_error_once(self, clear_spans):
        step = AsyncMock(side_effect=KeycloakAdminError("boom", status_code=500))

        with pytest.raises(SecError):
            await self._reconciler().run_step("client", step)

        (span,) = clear_spans.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        exception_events = [e for e in span.events if e.name == "exception"]
        assert len(exception_events) == 1

    def test_get_tracer_without_setup(self):
        tracer = get_tracer("test")

        with tracer.start_as_current_span("noop") as span:
            assert span is not None
