"""Selection cascade: dependent loads and resets on conversation change"""

import asyncio
import logging
from collections import Counter
from typing import TYPE_CHECKING, Any, Coroutine, Optional, TypeVar

if TYPE_CHECKING:
    from docdrift.session.controller import SessionController

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _echo_key(item: Any) -> Optional[tuple]:
    """Messages stored by the server come back with a new id but the same role and text"""
    role = getattr(item, "role", None)
    return (role, item.content) if role else None


def merge_loaded(loaded: list[T], current: list[T], baseline: list[T]) -> list[T]:
    """
    Loaded rows followed by entries appended locally while the load was in
    flight (entries of current that were not in baseline), minus those the
    server already returned.

    A local entry counts as returned when a loaded row has its id, or, for
    messages, when a loaded row not yet matched has the same role and content.
    """
    pending = [item for item in current if not any(item is b for b in baseline)]
    known_ids = {item.id for item in loaded if getattr(item, "id", None)}
    echoes = Counter(key for key in map(_echo_key, loaded) if key is not None)

    kept = []
    for item in pending:
        if item.id in known_ids:
            continue
        key = _echo_key(item)
        if key is not None and echoes[key] > 0:
            echoes[key] -= 1
            continue
        kept.append(item)
    return list(loaded) + kept


class SelectionCascadeMixin:
    """Mixin for selection changes and background task tracking"""

    def _set_selection(self: "SessionController", conversation_id: Optional[str]) -> bool:
        """
        Move the selection pointer; returns False when nothing changed.

        Messages, documents and preview are cleared and the new conversation's
        messages and documents are fetched in the background.
        """
        if conversation_id == self.state.selected_conversation_id:
            return False

        logger.info(f"Selected conversation: {conversation_id}")
        self.state.selected_conversation_id = conversation_id
        self.state.messages = []
        self.state.documents = []
        self._reset_preview()

        if conversation_id is not None:
            self._spawn(self._run_cascade(conversation_id))
        return True

    async def _run_cascade(self: "SessionController", conversation_id: str):
        # both loads handle their own failures
        await asyncio.gather(
            self.load_messages(conversation_id, fresh=True),
            self.load_documents(conversation_id, fresh=True),
        )

    def _is_current(self: "SessionController", conversation_id: str) -> bool:
        """True if an async result for this conversation may still be applied"""
        return self._token.alive and self.state.selected_conversation_id == conversation_id

    def _reset_preview(self: "SessionController"):
        self.state.preview = None
        self.state.previewing_document_id = None

    def _spawn(self: "SessionController", coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self: "SessionController"):
        """Wait for cascade loads and scheduled replies to settle"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
