"""Backend readiness gating for the session"""

import logging
from typing import TYPE_CHECKING, Optional

from docdrift.utils.errors import NotReadyError

if TYPE_CHECKING:
    from docdrift.session.controller import SessionController

logger = logging.getLogger(__name__)


class ConnectionMixin:
    """Mixin gating every remote operation on backend readiness"""

    @property
    def backend_ready(self: "SessionController") -> bool:
        return self.readiness.ready

    def start(self: "SessionController"):
        """Start readiness polling; conversations load once it latches"""
        logger.info("=== WAITING FOR BACKEND ===")
        self.readiness.start()

    async def check_backend(self: "SessionController"):
        """Manual retry (no-op while a probe is running or once ready)"""
        await self.readiness.check_now()

    async def wait_until_ready(self: "SessionController", timeout: Optional[float] = None) -> bool:
        return await self.readiness.wait_ready(timeout)

    def _on_backend_ready(self: "SessionController"):
        if not self._token.alive:
            return
        logger.info("=== BACKEND READY ===")
        self._spawn(self.load_conversations())

    def _require_ready(self: "SessionController"):
        if not self.readiness.ready:
            state = self.readiness.state
            detail = f": {state.last_error}" if state.last_error else ""
            raise NotReadyError(f"Backend is not reachable yet{detail}")
