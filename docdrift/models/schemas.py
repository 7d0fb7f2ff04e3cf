"""Pydantic schemas"""
import re
from datetime import datetime
from typing import Optional, Any, Literal
from pydantic import BaseModel, field_validator

from docdrift.utils.time_utils import parse_timestamp


# Auto-generated conversation titles
MAX_AUTO_TITLE_LENGTH = 60
TITLE_ELLIPSIS = "..."
DEFAULT_CONVERSATION_TITLE = "New Conversation"

# Text of the locally synthesized assistant reply when a send fails
OFFLINE_REPLY_TEXT = (
    "This is a mock response. Connect to your backend API to get real AI "
    "responses based on your documents."
)

DEFAULT_PREVIEW_TITLE = "Document preview"

_WHITESPACE_RE = re.compile(r"\s+")


def derive_conversation_title(seed: Optional[str], fallback_index: int) -> str:
    """
    Title for a conversation created on the user's behalf.

    The seed is trimmed and its whitespace runs collapsed; long seeds are cut
    so that the result including the ellipsis is MAX_AUTO_TITLE_LENGTH long.
    Without a usable seed: "New Conversation {fallback_index}".
    """
    trimmed = (seed or "").strip()
    if trimmed:
        normalized = _WHITESPACE_RE.sub(" ", trimmed)
        if len(normalized) <= MAX_AUTO_TITLE_LENGTH:
            return normalized
        cut = MAX_AUTO_TITLE_LENGTH - len(TITLE_ELLIPSIS)
        return f"{normalized[:cut].rstrip()}{TITLE_ELLIPSIS}"
    return f"{DEFAULT_CONVERSATION_TITLE} {fallback_index}"


def to_boolean(value: Any, fallback: bool = True) -> bool:
    """Normalize a flag that may arrive as a string"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value) if fallback else False


class Conversation(BaseModel):
    id: str
    title: str = DEFAULT_CONVERSATION_TITLE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @classmethod
    def from_row(cls, row: dict) -> "Conversation":
        """Map a backend conversation row"""
        return cls(
            id=str(row["id"]),
            title=row.get("title") or DEFAULT_CONVERSATION_TITLE,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class Message(BaseModel):
    id: Optional[str] = None
    conversation_id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[datetime] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @classmethod
    def from_row(cls, row: dict) -> "Message":
        """Map a backend message row (sender "ai" is the assistant)"""
        msg_id = row.get("id")
        return cls(
            id=str(msg_id) if msg_id is not None else None,
            conversation_id=str(row["conversation_id"]),
            role="assistant" if row.get("sender") == "ai" else "user",
            content=row.get("content", ""),
            timestamp=row.get("timestamp"),
        )


class Document(BaseModel):
    id: str
    conversation_id: str
    filename: str
    file_size: Optional[int] = None  # backend does not report it
    upload_date: Optional[datetime] = None
    is_included: bool = True
    storage_path: Optional[str] = None

    @field_validator("upload_date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @classmethod
    def from_row(cls, row: dict) -> "Document":
        """Map a backend document row"""
        return cls(
            id=str(row["id"]),
            conversation_id=str(row["conversation_id"]),
            filename=row["filename"],
            upload_date=row.get("uploaded_at"),
            is_included=to_boolean(row.get("include"), True),
            storage_path=row.get("storage_path"),
        )


class PreviewDoc(BaseModel):
    """Document currently opened for preview"""

    document_id: str
    url: str
    title: str = DEFAULT_PREVIEW_TITLE


class EnsureConversationResult(BaseModel):
    conversation_id: str
    created: bool


class ReadinessState(BaseModel):
    """Backend readiness latch"""

    ready: bool = False
    checking: bool = False
    retry_count: int = 0
    last_error: Optional[str] = None
    checked_at: Optional[datetime] = None
