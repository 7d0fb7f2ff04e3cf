"""In-memory session state"""

from dataclasses import dataclass, field
from typing import Optional

from docdrift.models.schemas import Conversation, Document, Message, PreviewDoc


@dataclass
class PanelLayout:
    """Side panel visibility; on mobile the panels are exclusive overlays"""

    is_mobile: bool = False
    conversations_open: bool = True
    documents_open: bool = True

    def set_mobile(self, is_mobile: bool):
        self.is_mobile = is_mobile
        self.conversations_open = not is_mobile
        self.documents_open = not is_mobile

    def toggle_conversations(self) -> bool:
        self.conversations_open = not self.conversations_open
        if self.conversations_open and self.is_mobile:
            self.documents_open = False
        return self.conversations_open

    def toggle_documents(self) -> bool:
        self.documents_open = not self.documents_open
        if self.documents_open and self.is_mobile:
            self.conversations_open = False
        return self.documents_open

    def collapse_mobile_conversations(self):
        if self.is_mobile:
            self.conversations_open = False


@dataclass
class SessionState:
    """
    Conversation list, selection pointer and the collections scoped to the
    selected conversation.

    messages/documents always belong to selected_conversation_id; they are
    replaced, never merged, when the selection changes.
    """

    conversations: list[Conversation] = field(default_factory=list)
    selected_conversation_id: Optional[str] = None
    messages: list[Message] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    preview: Optional[PreviewDoc] = None
    previewing_document_id: Optional[str] = None

    loading: bool = True  # blocking spinner until the first conversation load
    has_loaded_conversations: bool = False
    sending_message: bool = False

    layout: PanelLayout = field(default_factory=PanelLayout)

    def find_conversation(self, conversation_id: str) -> Optional[Conversation]:
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def find_document(self, document_id: str) -> Optional[Document]:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    @property
    def selected_conversation(self) -> Optional[Conversation]:
        if self.selected_conversation_id is None:
            return None
        return self.find_conversation(self.selected_conversation_id)
