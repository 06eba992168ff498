"""Provisioning status poller.

The poller is a small state machine (``idle`` → ``polling`` → ``terminal``)
running on one asyncio task.  The next poll is scheduled only after the
previous response has been handled, so requests never overlap.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Callable, Optional

from frontdoor.services.gateway.client import FrontdoorGatewayClient
from frontdoor.services.gateway.models import SessionStatus

from . import metrics as sdk_metrics
from . import runtime
from .context import SessionContext
from .errors import GatewayRequestError, InvalidRedirect, PollingError
from .launch import TERMINAL_STATUSES, LaunchSession
from .redirect import sanitize

logger = logging.getLogger(__name__)

Navigator = Callable[[str], Any]
UpdateCallback = Callable[[LaunchSession], Any]

PROGRESS_STEP = 12
PROGRESS_CEILING = 86


class PollerState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    TERMINAL = "terminal"


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class SessionPoller:
    def __init__(
        self,
        gateway: FrontdoorGatewayClient,
        session: LaunchSession,
        *,
        origin: str,
        interval_ms: int | None = None,
        interactive: bool = False,
        max_consecutive_failures: int | None = None,
        navigator: Navigator | None = None,
        on_update: UpdateCallback | None = None,
        redirect_delay_seconds: float = 0.0,
        context: SessionContext | None = None,
    ) -> None:
        self.gateway = gateway
        self.session = session
        self.origin = origin
        self.interval_ms = runtime.effective_poll_interval_ms(interval_ms, interactive=interactive)
        self.max_consecutive_failures = (
            runtime.POLL_MAX_CONSECUTIVE_FAILURES
            if max_consecutive_failures is None
            else max_consecutive_failures
        )
        self.navigator = navigator
        self.on_update = on_update
        self.redirect_delay_seconds = redirect_delay_seconds
        self.context = context
        self._generation = context.generation if context is not None else None

        self.state = PollerState.IDLE
        self.consecutive_failures = 0
        self.navigated_to: Optional[str] = None
        self.error: BaseException | None = None
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    # ------------------------------------------------------------------
    def _set_state(self, state: PollerState) -> None:
        self.state = state
        sdk_metrics.set_poller_state(state.value)

    def start(self) -> None:
        """Begin polling.  A second call while polling is a no-op."""

        if self.state is not PollerState.IDLE:
            return
        self._stop_event = asyncio.Event()
        self._set_state(PollerState.POLLING)
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        elif not task.cancelled():
            # wait() may never be called; mark the failure as retrieved.
            self.error = task.exception()
            if self.error is not None:
                logger.debug("Poller for %s stopped after failure: %s", self.session.session_id, self.error)
        self._task = None
        self._stop_event = None
        if self.state is PollerState.POLLING:
            self._set_state(PollerState.IDLE)

    async def wait(self) -> LaunchSession | None:
        """Wait for the loop to finish.

        Returns the session once terminal, ``None`` if the poller was
        stopped first.  Re-raises :class:`InvalidRedirect` and
        :class:`PollingError`.
        """

        if self._task is None:
            return self.session if self.state is PollerState.TERMINAL else None
        task = self._task
        try:
            return await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            return None

    async def run(self) -> LaunchSession | None:
        self.start()
        return await self.wait()

    # ------------------------------------------------------------------
    async def _poll_loop(self) -> LaunchSession | None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            status = await self._poll_once()
            if self._is_stale():
                logger.debug("Discarding poll result for reset session %s", self.session.session_id)
                self._set_state(PollerState.IDLE)
                return None
            if status is not None and status.status in TERMINAL_STATUSES:
                self._set_state(PollerState.TERMINAL)
                await self._finish(status)
                return self.session
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_ms / 1000)
            except asyncio.TimeoutError:
                pass
        return None

    def _is_stale(self) -> bool:
        return self.context is not None and self.context.generation != self._generation

    async def _poll_once(self) -> SessionStatus | None:
        try:
            status = await self.gateway.get_session(self.session.session_id)
        except GatewayRequestError as exc:
            self.consecutive_failures += 1
            sdk_metrics.observe_session_poll("error")
            logger.warning(
                "Session poll failed (%d consecutive): %s", self.consecutive_failures, exc
            )
            limit = self.max_consecutive_failures
            if limit is not None and self.consecutive_failures > limit:
                self._set_state(PollerState.TERMINAL)
                raise PollingError(str(exc), details=exc.details) from exc
            return None

        self.consecutive_failures = 0
        sdk_metrics.observe_session_poll(status.status)
        session = self.session
        session.status = status.status or session.status
        session.detail = status.detail
        session.error = status.error
        if status.status not in TERMINAL_STATUSES:
            session.progress = min(session.progress + PROGRESS_STEP, PROGRESS_CEILING)
            logger.info("Session %s is %s (%d%%)", session.session_id, session.status, session.progress)
        if self.on_update is not None:
            await _maybe_await(self.on_update(session))
        return status

    async def _finish(self, status: SessionStatus) -> None:
        session = self.session
        if status.status != "ready":
            logger.error(
                "Session %s ended as %s: %s",
                session.session_id,
                status.status,
                status.error or status.detail or "",
            )
            return

        session.verify_url = sanitize(status.verify_url, self.origin)
        if status.instance_url:
            destination = sanitize(status.instance_url, self.origin)
        else:
            destination = session.verify_url
        if destination is None:
            logger.error("Session %s is ready without a safe destination URL", session.session_id)
            raise InvalidRedirect(
                "Provisioning completed without a valid instance URL.",
                details={"instance_url": status.instance_url, "verify_url": status.verify_url},
            )
        session.instance_url = destination
        session.progress = 100
        logger.info("Session %s ready at %s", session.session_id, destination)
        if self.on_update is not None:
            await _maybe_await(self.on_update(session))
        if self.redirect_delay_seconds > 0:
            await asyncio.sleep(self.redirect_delay_seconds)
        self.navigated_to = destination
        if self.navigator is not None:
            await _maybe_await(self.navigator(destination))


__all__ = ["PollerState", "SessionPoller"]
