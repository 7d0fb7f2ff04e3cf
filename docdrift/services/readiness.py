"""Backend readiness monitor"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from docdrift.models.schemas import ReadinessState
from docdrift.utils.cancellation import CancellationToken
from docdrift.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

UNREACHABLE_MESSAGE = "Unable to reach backend"


class ReadinessMonitor:
    """
    Polls health paths until the backend answers once.

    Readiness is a one-way latch: after the first reachable probe no further
    probe is issued. check_now() is safe to call at any time; it returns
    immediately when already ready, already checking, or torn down.
    """

    def __init__(
        self,
        probe: Callable[[str], Awaitable[int]],
        health_paths: Sequence[str] = ("/health", "/"),
        interval: float = 1.0,
        server_error_status: int = 500,
        token: Optional[CancellationToken] = None,
        on_ready: Optional[Callable[[], None]] = None,
    ):
        self._probe = probe
        self.health_paths = list(health_paths)
        self.interval = interval
        self.server_error_status = server_error_status
        self._token = token or CancellationToken()
        self._on_ready = on_ready
        self.state = ReadinessState()
        self._ready_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self.state.ready

    async def check_now(self):
        """Probe the health paths once (no-op when ready, busy or torn down)"""
        if self.state.ready or self.state.checking or self._token.cancelled:
            return

        self.state.checking = True
        try:
            reachable, last_error = await self._probe_all()

            if self._token.cancelled:
                logger.debug("Readiness result discarded: monitor torn down")
                return

            self.state.checked_at = utc_now()
            if reachable:
                self._mark_ready()
            else:
                self.state.retry_count += 1
                self.state.last_error = last_error
                logger.warning(
                    f"Backend health check failed (attempt {self.state.retry_count}): {last_error}"
                )
        finally:
            self.state.checking = False

    async def _probe_all(self) -> tuple[bool, str]:
        last_error = UNREACHABLE_MESSAGE
        for path in self.health_paths:
            try:
                status = await self._probe(path)
            except Exception as e:
                last_error = str(e) or UNREACHABLE_MESSAGE
                logger.debug(f"Health probe {path} failed: {last_error}")
                continue

            if status < self.server_error_status:
                logger.info(f"Backend reachable at {path} (status {status})")
                return True, ""
            last_error = f"Backend responded with status {status} at {path}"
        return False, last_error

    def _mark_ready(self):
        self.state.ready = True
        self.state.last_error = None
        self.state.retry_count = 0
        self._ready_event.set()
        if self._on_ready:
            self._on_ready()

    async def run(self):
        """Check immediately, then every interval until ready or torn down"""
        while not self.state.ready and not self._token.cancelled:
            await self.check_now()
            if self.state.ready or self._token.cancelled:
                break
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        """Start the polling loop in the background"""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait for the latch; returns False on timeout"""
        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def stop(self):
        """Stop polling (cancelling the token is what discards late results)"""
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
