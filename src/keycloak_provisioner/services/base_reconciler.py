"""
Base reconciler class providing common patterns for provisioning steps.

This module defines the BaseReconciler class that implements the shared
mechanics of every step: narration, timing, metrics, tracing, conversion
of Keycloak transport errors into step errors, and get-by-name lookups
that keep "not found" apart from "could not look".
"""

import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, Literal

from opentelemetry.trace import Status, StatusCode

from ..errors import ProvisioningError, SecError
from ..models.results import Found, Lookup, LookupFailed, NotFound, StepResult
from ..observability.logging import ProvisioningLogger
from ..observability.metrics import MetricsCollector, metrics_collector
from ..observability.tracing import get_tracer
from ..utils.keycloak_admin import KeycloakAdminError


class BaseReconciler:
    """
    Base class for provisioning services.

    Provides common patterns for:
    - Step execution with structured logging, metrics and spans
    - Translation of KeycloakAdminError into SecError
    - Explicit lookup results
    """

    def __init__(
        self,
        logger: ProvisioningLogger | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize base reconciler.

        Args:
            logger: Step-narration logger, a class-named one is created if not provided
            metrics: Metrics collector, the module collector is used if not provided
        """
        self.logger = logger or ProvisioningLogger(self.__class__.__name__)
        self.metrics = metrics or metrics_collector
        self.tracer = get_tracer(self.__class__.__module__)

    async def run_step(
        self,
        step: str,
        func: Callable[..., Awaitable[StepResult]],
        *args: Any,
        **kwargs: Any,
    ) -> StepResult:
        """
        Execute one provisioning step.

        Args:
            step: Step name used in logs, metrics and errors
            func: Coroutine function performing the step
            *args: Arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            The StepResult produced by ``func`` with its duration filled in

        Raises:
            ProvisioningError: Whatever the step raised, unmodified; a bare
                KeycloakAdminError is converted into a SecError for ``step``
        """
        start_time = time.monotonic()

        with self.tracer.start_as_current_span(
            f"provision.{step}",
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attribute("provisioning.step", step)

            async with self.metrics.track_step(step):
                try:
                    result = await func(*args, **kwargs)
                except ProvisioningError as e:
                    self._record_failure(step, e, start_time, span)
                    raise
                except KeycloakAdminError as e:
                    error = SecError(
                        step,
                        f"Keycloak request failed during {step}",
                        cause=e,
                        status_code=e.status_code,
                    )
                    self._record_failure(step, error, start_time, span)
                    raise error from e

            result.duration = time.monotonic() - start_time
            span.set_attribute("provisioning.outcome", result.outcome.value)

        self.metrics.record_step_outcome(step, result.outcome.value)
        self.logger.log_step_success(step, result.outcome.value, result.duration)
        return result

    def _record_failure(
        self, step: str, error: ProvisioningError, start_time: float, span: Any
    ) -> None:
        duration = time.monotonic() - start_time
        extra = {}
        status_code = getattr(error, "status_code", None)
        if status_code is not None:
            extra["http_status"] = status_code

        self.logger.log_step_error(step, error, duration, **extra)
        self.metrics.record_step_outcome(step, "Failed")
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error.message)))

    @contextmanager
    def translate_errors(self, step: str, description: str) -> Iterator[None]:
        """Re-raise KeycloakAdminError as a SecError carrying ``description``."""
        try:
            yield
        except KeycloakAdminError as e:
            raise SecError(
                step, description, cause=e, status_code=e.status_code
            ) from e

    async def lookup[T](self, fetch: Awaitable[T | None]) -> Lookup[T]:
        """Await a get-by-name call and classify its answer."""
        try:
            descriptor = await fetch
        except KeycloakAdminError as e:
            return LookupFailed(e)

        if descriptor is None:
            return NotFound()
        return Found(descriptor)

    def resolve_lookup[T](
        self,
        step: str,
        kind: str,
        lookup: Lookup[T],
        policy: Literal["fail", "create"],
    ) -> T | None:
        """
        Turn a lookup into the descriptor to update, or None to create.

        A failed lookup aborts the step under the ``fail`` policy. Under the
        ``create`` policy it is treated like an absent resource.
        """
        match lookup:
            case Found(descriptor=descriptor):
                return descriptor
            case NotFound():
                return None
            case LookupFailed(cause=cause):
                if policy == "fail":
                    raise SecError(
                        step,
                        f"Could not determine whether {kind} exists",
                        cause=cause,
                        status_code=getattr(cause, "status_code", None),
                        user_action="Check Keycloak health and retry provisioning",
                    )
                self.logger.warning(
                    f"Lookup of {kind} failed, proceeding to create: {cause}",
                    step=step,
                )
                return None
        raise TypeError(f"Unexpected lookup result: {lookup!r}")
