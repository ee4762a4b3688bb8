"""
Readiness wait for the Keycloak service.

Polls the service base URL with plain GET probes at a fixed interval until
one of them gets an HTTP answer, or the attempt budget runs out. Probes start
on a fixed cadence and each one is cut off after one interval, so the budget
(attempts x interval) bounds the total wait deterministically even when the
service accepts connections but never answers.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from keycloak_provisioner.errors import ServiceUnavailableError
from keycloak_provisioner.observability.metrics import MetricsCollector, metrics_collector

logger = logging.getLogger(__name__)

type Probe = Callable[[str], Awaitable[bool]]


class HttpProbe:
    """
    Probe a URL with a GET request.

    Any response with a status below ``failure_status`` counts as reachable;
    transport errors (timeouts included) and gateway-style 5xx answers count
    as unreachable. ``timeout`` overrides the client's own timeout, which is
    sized for admin calls rather than for probes.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        failure_status: int = 500,
        timeout: float | None = None,
    ):
        self.http_client = http_client
        self.failure_status = failure_status
        self.timeout = timeout

    async def __call__(self, url: str) -> bool:
        try:
            if self.timeout is None:
                response = await self.http_client.get(url)
            else:
                response = await self.http_client.get(
                    url, timeout=httpx.Timeout(self.timeout)
                )
        except httpx.HTTPError as e:
            logger.debug(f"Probe of {url} failed: {e}")
            return False
        return response.status_code < self.failure_status


class ReadinessWaiter:
    """Bounded retry-with-fixed-interval wait for an HTTP service."""

    def __init__(
        self,
        probe: Probe,
        metrics: MetricsCollector | None = None,
    ):
        self.probe = probe
        self.metrics = metrics or metrics_collector

    async def _probe_once(self, service_url: str, interval: float) -> bool:
        if interval <= 0:
            return await self.probe(service_url)
        try:
            return await asyncio.wait_for(self.probe(service_url), timeout=interval)
        except TimeoutError:
            logger.debug(f"Probe of {service_url} got no answer within {interval}s")
            return False

    async def wait_until_ready(
        self, service_url: str, max_attempts: int, interval_ms: int
    ) -> int:
        """
        Wait until ``service_url`` answers.

        Sends at most ``max_attempts`` probes, one every ``interval_ms``. A
        probe still pending after one interval counts as unreachable. There is
        no pause after the last probe.

        Returns:
            The number of probes sent before the service answered

        Raises:
            ServiceUnavailableError: If no probe succeeded
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        interval = interval_ms / 1000
        for attempt in range(1, max_attempts + 1):
            started = time.monotonic()
            ready = await self._probe_once(service_url, interval)
            self.metrics.record_probe(ready)
            if ready:
                logger.info(
                    f"Service at {service_url} answered after {attempt} attempt(s)",
                    extra={"url": service_url, "attempt": attempt},
                )
                return attempt

            logger.debug(
                f"Service at {service_url} not ready (attempt {attempt}/{max_attempts})",
                extra={"url": service_url, "attempt": attempt},
            )
            if attempt < max_attempts:
                await asyncio.sleep(max(0.0, interval - (time.monotonic() - started)))

        raise ServiceUnavailableError(service_url, max_attempts)
