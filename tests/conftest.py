"""Shared fixtures"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from docdrift.config import Settings
from docdrift.models.schemas import Conversation, Document, Message
from docdrift.services.notifications import ToastManager
from docdrift.session.controller import SessionController


def make_conversation(conv_id: str, title: str = "") -> Conversation:
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Conversation(id=conv_id, title=title or f"Chat {conv_id}", created_at=ts, updated_at=ts)


def make_document(doc_id: str, conversation_id: str, is_included: bool = True) -> Document:
    return Document(
        id=doc_id,
        conversation_id=conversation_id,
        filename=f"{doc_id}.pdf",
        is_included=is_included,
    )


def make_assistant(conversation_id: str, content: str = "Answer") -> Message:
    return Message(
        id="assistant-1",
        conversation_id=conversation_id,
        role="assistant",
        content=content,
        timestamp=datetime.now(timezone.utc),
    )


@pytest.fixture
def settings():
    """Settings with fast timers"""
    return Settings(
        _env_file=None,
        api_base_url="http://backend.test",
        health_check_interval=0.01,
        offline_reply_delay=0,
    )


@pytest.fixture
def mock_api():
    """Mock APIClient"""
    api = Mock()
    api.probe = AsyncMock(return_value=200)
    api.list_conversations = AsyncMock(return_value=[])
    api.create_conversation = AsyncMock(return_value="conv-new")
    api.rename_conversation = AsyncMock(return_value=None)
    api.delete_conversation = AsyncMock(return_value=None)
    api.list_messages = AsyncMock(return_value=[])
    api.send_message = AsyncMock(side_effect=lambda cid, text: make_assistant(cid))
    api.list_documents = AsyncMock(return_value=[])
    api.upload_document = AsyncMock()
    api.delete_document = AsyncMock(return_value=None)
    api.set_document_included = AsyncMock(return_value=None)
    api.get_document_url = AsyncMock(return_value="https://files.test/signed")
    api.close = AsyncMock()
    return api


@pytest.fixture
def toasts():
    return ToastManager()


@pytest.fixture
def session(mock_api, settings, toasts):
    """Session whose backend is already reachable"""
    session = SessionController(mock_api, settings, toasts)
    session.readiness.state.ready = True
    return session


@pytest.fixture
def seeded_session(session):
    """Session with three listed conversations, the first one selected"""
    session.state.conversations = [make_conversation("c1"), make_conversation("c2"), make_conversation("c3")]
    session.state.selected_conversation_id = "c1"
    session.state.has_loaded_conversations = True
    session.state.loading = False
    return session
