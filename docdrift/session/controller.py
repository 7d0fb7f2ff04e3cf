"""Client session controller"""

import asyncio
import logging
from typing import Optional

from docdrift.config import Settings
from docdrift.services.api_client import APIClient
from docdrift.services.notifications import ToastManager
from docdrift.services.readiness import ReadinessMonitor
from docdrift.session.connection import ConnectionMixin
from docdrift.session.conversation_management import ConversationManagementMixin
from docdrift.session.document_handlers import DocumentHandlersMixin
from docdrift.session.message_handlers import MessageHandlersMixin
from docdrift.session.selection import SelectionCascadeMixin
from docdrift.session.state import SessionState
from docdrift.session.sync import EntitySynchronizer
from docdrift.utils.cancellation import CancellationToken
from docdrift.utils.single_flight import SingleFlight

logger = logging.getLogger(__name__)


class SessionController(
    ConnectionMixin,
    ConversationManagementMixin,
    MessageHandlersMixin,
    DocumentHandlersMixin,
    SelectionCascadeMixin,
):
    """
    Local view of conversations, messages and documents kept in sync with the
    backend.

    All state lives in self.state and is mutated only between awaits, so the
    only explicit mutual exclusion needed is the single-flight conversation
    creation. Closing the session cancels the token that every async
    completion checks before touching state.
    """

    def __init__(
        self,
        api_client: APIClient,
        settings: Settings,
        toast_manager: Optional[ToastManager] = None,
    ):
        self.api_client = api_client
        self.settings = settings
        self.toast_manager = toast_manager or ToastManager()

        self.state = SessionState()
        self._token = CancellationToken()
        self._single_flight = SingleFlight()
        self._tasks: set[asyncio.Task] = set()

        self.synchronizer = EntitySynchronizer(self.toast_manager, self._token)
        self.readiness = ReadinessMonitor(
            probe=api_client.probe,
            health_paths=settings.health_paths,
            interval=settings.health_check_interval,
            server_error_status=settings.server_error_status,
            token=self._token,
            on_ready=self._on_backend_ready,
        )

    @property
    def closed(self) -> bool:
        return self._token.cancelled

    # === Layout ===

    def set_mobile(self, is_mobile: bool):
        self.state.layout.set_mobile(is_mobile)

    def toggle_conversations_panel(self) -> bool:
        return self.state.layout.toggle_conversations()

    def toggle_documents_panel(self) -> bool:
        return self.state.layout.toggle_documents()

    # === Lifecycle ===

    async def close(self):
        """Tear down: late results are discarded, background work is cancelled"""
        if self._token.cancelled:
            return
        logger.info("Closing session")
        self._token.cancel()
        self.readiness.stop()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.api_client.close()

    async def __aenter__(self) -> "SessionController":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
