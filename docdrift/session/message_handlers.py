"""Message loading and sending for the session"""

import asyncio
import logging
from typing import TYPE_CHECKING

from docdrift.models.schemas import Message, OFFLINE_REPLY_TEXT
from docdrift.session.selection import merge_loaded
from docdrift.session.sync import EntityKind, SyncOperation, SyncResult
from docdrift.utils.errors import ValidationError
from docdrift.utils.time_utils import local_entity_id, temp_message_id, utc_now

if TYPE_CHECKING:
    from docdrift.session.controller import SessionController

logger = logging.getLogger(__name__)


class MessageHandlersMixin:
    """Mixin for the message collection of the selected conversation"""

    async def load_messages(self: "SessionController", conversation_id: str, fresh: bool = False):
        """
        Replace messages with the server's list for conversation_id.

        Messages appended while the request is in flight are kept after the
        loaded ones. fresh=True means the list was cleared by a selection
        change, so everything shown now was added locally.
        """
        baseline = [] if fresh else list(self.state.messages)
        try:
            loaded = await self.api_client.list_messages(conversation_id)
        except Exception as e:
            logger.error(f"Failed to load messages for {conversation_id}: {e}", exc_info=True)
            if self._is_current(conversation_id):
                self.toast_manager.error("Failed to load messages. Using offline mode.")
                self.state.messages = merge_loaded([], self.state.messages, baseline)
            return

        if not self._is_current(conversation_id):
            logger.debug(f"Discarding messages of {conversation_id}: selection changed")
            return

        self.state.messages = merge_loaded(loaded, self.state.messages, baseline)
        logger.info(f"Loaded {len(loaded)} messages for {conversation_id}")

    async def send_message(self: "SessionController", content: str) -> SyncResult:
        """
        Send a user message, creating a conversation first if none is selected.

        The user message is shown immediately; if the backend fails, an
        offline assistant reply follows after offline_reply_delay.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content cannot be empty")
        self._require_ready()

        if self.state.sending_message:
            logger.info("Send ignored: previous message still in flight")
            return self.synchronizer.skipped(EntityKind.MESSAGE, SyncOperation.SEND)

        self.state.sending_message = True
        try:
            try:
                ensured = await self.ensure_active_conversation(text)
            except Exception as e:
                return self.synchronizer.fail(EntityKind.MESSAGE, SyncOperation.SEND, e)

            conversation_id = ensured.conversation_id
            user_message = Message(
                id=temp_message_id(),
                conversation_id=conversation_id,
                role="user",
                content=text,
                timestamp=utc_now(),
            )

            return await self.synchronizer.run(
                EntityKind.MESSAGE,
                SyncOperation.SEND,
                lambda: self.api_client.send_message(conversation_id, text),
                optimistic=lambda: self._append_message(user_message),
                apply=self._append_message,
                fallback=lambda: self._schedule_offline_reply(user_message),
            )
        finally:
            self.state.sending_message = False

    def _append_message(self: "SessionController", message: Message) -> Message:
        if self._is_current(message.conversation_id):
            self.state.messages.append(message)
        return message

    def _schedule_offline_reply(self: "SessionController", user_message: Message) -> Message:
        self._spawn(self._deliver_offline_reply(user_message))
        return user_message

    async def _deliver_offline_reply(self: "SessionController", user_message: Message):
        await asyncio.sleep(self.settings.offline_reply_delay)

        conversation_id = user_message.conversation_id
        if not self._is_current(conversation_id):
            return
        # a reload may have dropped the unsaved user message; never reply to nothing
        if not any(m is user_message for m in self.state.messages):
            logger.debug("Offline reply skipped: user message no longer shown")
            return

        self.state.messages.append(
            Message(
                id=local_entity_id(1),
                conversation_id=conversation_id,
                role="assistant",
                content=OFFLINE_REPLY_TEXT,
                timestamp=utc_now(),
            )
        )
