"""Transport primitives for composing the frontdoor gateway client."""
from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

RetryHook = Callable[[int, Exception], Awaitable[None]]
LatencyObserver = Callable[[float], None]

#: Methods that are safe to repeat after a transport failure.
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class RetryTransport:
    """Retrying transport for idempotent gateway reads.

    Only connection-level failures (:class:`httpx.TransportError`) are
    retried; an HTTP error status is a response, not a failure, and is
    returned to the caller unchanged.  Non-idempotent methods are sent once.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float,
        retries: int,
        wait_for_service: Optional[RetryHook] = None,
        observe_latency: Optional[LatencyObserver] = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._retries = max(0, retries)
        self._wait_for_service = wait_for_service
        self._observe_latency = observe_latency

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        request_kwargs: Dict[str, Any] = dict(kwargs)
        request_kwargs.setdefault("timeout", self._timeout)
        retries = self._retries if method.upper() in IDEMPOTENT_METHODS else 0

        for attempt in range(retries + 1):
            try:
                start = time.perf_counter()
                response = await self._client.request(method, url, **request_kwargs)
                if self._observe_latency is not None:
                    self._observe_latency((time.perf_counter() - start) * 1000)
                return response
            except httpx.TransportError as exc:
                if attempt == retries:
                    raise
                logger.warning("%s %s failed (attempt %d): %s", method, url, attempt + 1, exc)
                if self._wait_for_service is not None:
                    await self._wait_for_service(attempt + 1, exc)
        raise RuntimeError("retry loop exhausted")


__all__ = ["IDEMPOTENT_METHODS", "RetryTransport"]
