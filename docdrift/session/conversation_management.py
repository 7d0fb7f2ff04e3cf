"""Conversation management for the session"""

import logging
from typing import TYPE_CHECKING, Optional

from docdrift.models.schemas import (
    Conversation,
    EnsureConversationResult,
    derive_conversation_title,
)
from docdrift.session.selection import merge_loaded
from docdrift.session.sync import EntityKind, SyncOperation, SyncResult
from docdrift.utils.errors import SessionClosedError, ValidationError
from docdrift.utils.time_utils import local_entity_id, utc_now

if TYPE_CHECKING:
    from docdrift.session.controller import SessionController

logger = logging.getLogger(__name__)

# single-flight key: "create a conversation while none is selected"
CREATE_ACTIVE_CONVERSATION = "create-active-conversation"


class ConversationManagementMixin:
    """Mixin for conversation list, selection and lifecycle"""

    async def load_conversations(self: "SessionController") -> list[Conversation]:
        """Fetch the conversation list; auto-selects the first one if none is selected"""
        self._require_ready()

        first_load = not self.state.has_loaded_conversations
        if first_load and not self.state.conversations:
            self.state.loading = True

        baseline = list(self.state.conversations)
        try:
            loaded = await self.api_client.list_conversations()
            if not self._token.alive:
                return []

            # conversations created locally meanwhile stay on top
            merged = merge_loaded(loaded, self.state.conversations, baseline)
            pending = merged[len(loaded):]
            self.state.conversations = pending + list(loaded)
            logger.info(f"Loaded {len(loaded)} conversations")

            if self.state.conversations and self.state.selected_conversation_id is None:
                self._set_selection(self.state.conversations[0].id)

        except Exception as e:
            logger.error(f"Failed to load conversations: {e}", exc_info=True)
            if self._token.alive:
                self.toast_manager.error("Failed to load conversations")

        finally:
            if self._token.alive:
                self.state.has_loaded_conversations = True
                if first_load:
                    self.state.loading = False

        return self.state.conversations

    async def ensure_active_conversation(
        self: "SessionController", seed_title: Optional[str] = None
    ) -> EnsureConversationResult:
        """
        Return the selected conversation, creating one if none is selected.

        Concurrent callers share one creation; errors propagate to all of them
        and the next call after a failure retries.
        """
        self._require_ready()

        if self.state.selected_conversation_id:
            return EnsureConversationResult(
                conversation_id=self.state.selected_conversation_id, created=False
            )

        title = derive_conversation_title(seed_title, len(self.state.conversations) + 1)
        return await self._single_flight.do(
            CREATE_ACTIVE_CONVERSATION,
            lambda: self._create_active_conversation(title),
        )

    async def _create_active_conversation(
        self: "SessionController", title: str
    ) -> EnsureConversationResult:
        logger.info(f"Creating conversation on demand: {title!r}")
        conversation_id = await self.api_client.create_conversation(title)
        if not self._token.alive:
            raise SessionClosedError(f"Session closed while creating conversation {conversation_id}")

        self._add_new_conversation(conversation_id, title)
        return EnsureConversationResult(conversation_id=conversation_id, created=True)

    async def create_conversation(self: "SessionController") -> SyncResult:
        """Explicit "new conversation"; falls back to a local-only conversation"""
        self._require_ready()
        title = derive_conversation_title(None, len(self.state.conversations) + 1)

        return await self.synchronizer.run(
            EntityKind.CONVERSATION,
            SyncOperation.CREATE,
            lambda: self.api_client.create_conversation(title),
            apply=lambda conversation_id: self._add_new_conversation(conversation_id, title),
            fallback=lambda: self._add_new_conversation(local_entity_id(), title),
        )

    def _add_new_conversation(
        self: "SessionController", conversation_id: str, title: str
    ) -> Conversation:
        now = utc_now()
        conversation = Conversation(id=conversation_id, title=title, created_at=now, updated_at=now)
        self.state.conversations.insert(0, conversation)
        self._set_selection(conversation_id)
        self.state.layout.collapse_mobile_conversations()
        return conversation

    def select_conversation(self: "SessionController", conversation_id: str) -> bool:
        """Select a listed conversation and load its messages and documents"""
        self._require_ready()
        if self.state.find_conversation(conversation_id) is None:
            raise ValidationError(f"Unknown conversation: {conversation_id}")

        changed = self._set_selection(conversation_id)
        self.state.layout.collapse_mobile_conversations()
        return changed

    async def rename_conversation(
        self: "SessionController", conversation_id: str, title: str
    ) -> Optional[Conversation]:
        """
        Rename a conversation.

        Raises ValidationError for a blank title and re-raises remote failures
        so the caller can keep its edit form open.
        """
        new_title = (title or "").strip()
        if not new_title:
            raise ValidationError("Conversation title cannot be empty")
        self._require_ready()

        result = await self.synchronizer.run(
            EntityKind.CONVERSATION,
            SyncOperation.RENAME,
            lambda: self.api_client.rename_conversation(conversation_id, new_title),
            apply=lambda _: self._patch_conversation_title(conversation_id, new_title),
        )
        return result.entity

    def _patch_conversation_title(
        self: "SessionController", conversation_id: str, title: str
    ) -> Optional[Conversation]:
        for idx, conversation in enumerate(self.state.conversations):
            if conversation.id == conversation_id:
                updated = conversation.model_copy(update={"title": title, "updated_at": utc_now()})
                self.state.conversations[idx] = updated
                return updated
        return None

    async def delete_conversation(self: "SessionController", conversation_id: str) -> SyncResult:
        """Delete a conversation; deleting the selected one moves the selection"""
        self._require_ready()

        return await self.synchronizer.run(
            EntityKind.CONVERSATION,
            SyncOperation.DELETE,
            lambda: self.api_client.delete_conversation(conversation_id),
            apply=lambda _: self._remove_conversation(conversation_id),
        )

    def _remove_conversation(
        self: "SessionController", conversation_id: str
    ) -> Optional[Conversation]:
        removed = self.state.find_conversation(conversation_id)
        self.state.conversations = [
            c for c in self.state.conversations if c.id != conversation_id
        ]

        if self.state.selected_conversation_id == conversation_id:
            remaining = self.state.conversations
            # clears messages, documents and preview
            self._set_selection(remaining[0].id if remaining else None)

        return removed
