"""REST API client for server communication"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

import httpx

from docdrift.models.schemas import Conversation, Document, Message
from docdrift.services.auth import SessionAuth, SessionProvider
from docdrift.utils.errors import ServiceError
from docdrift.utils.time_utils import assistant_message_id, utc_now

logger = logging.getLogger(__name__)


class APIClient:
    """Async HTTP client for server API"""

    def __init__(
        self,
        base_url: str,
        session_provider: SessionProvider,
        timeout: float = 60.0,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session_provider = session_provider
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._closed = False

    def _get_client(self) -> httpx.AsyncClient:
        if self._closed:
            raise ServiceError("API client is closed")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                auth=SessionAuth(self.session_provider),
                transport=self._transport,
            )
        return self._client

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self):
        """Close the connection pool; later requests fail instead of reopening it"""
        self._closed = True
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send request; HTTP and network failures surface as ServiceError"""
        client = self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ServiceError(f"{method} {url} failed with status {status}", status) from e
        except httpx.HTTPError as e:
            raise ServiceError(f"{method} {url} failed: {e}") from e
        return response

    # === Health ===

    async def probe(self, path: str) -> int:
        """GET a health path without caching and return the raw status code"""
        client = self._get_client()
        try:
            response = await client.get(path, headers={"Cache-Control": "no-store"})
        except httpx.HTTPError as e:
            raise ServiceError(str(e) or "Unable to reach backend") from e
        return response.status_code

    # === Conversations ===

    async def list_conversations(self) -> list[Conversation]:
        """List conversations"""
        response = await self._request("GET", "conversations")
        return [Conversation.from_row(row) for row in response.json()]

    async def create_conversation(self, title: str) -> str:
        """Create new conversation, returns its id"""
        response = await self._request("POST", "conversations", json={"title": title})
        return str(response.json()["conversation_id"])

    async def rename_conversation(self, conversation_id: str, title: str) -> None:
        """Update conversation title"""
        await self._request("PATCH", f"conversations/{conversation_id}", json={"title": title})

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete conversation"""
        await self._request("DELETE", f"conversations/{conversation_id}")

    # === Messages ===

    async def list_messages(self, conversation_id: str) -> list[Message]:
        """List all messages in conversation"""
        response = await self._request("GET", f"conversations/{conversation_id}/messages")
        return [Message.from_row(row) for row in response.json()]

    async def send_message(self, conversation_id: str, content: str) -> Message:
        """
        Send user message and return the assistant reply.

        The backend answers with {answer} only, so the reply gets a
        client-side id and timestamp.
        """
        response = await self._request(
            "POST",
            f"conversations/{conversation_id}/messages",
            json={"content": content},
        )
        return Message(
            id=assistant_message_id(),
            conversation_id=conversation_id,
            role="assistant",
            content=response.json()["answer"],
            timestamp=utc_now(),
        )

    # === Documents ===

    async def list_documents(self, conversation_id: str) -> list[Document]:
        """List documents attached to conversation"""
        response = await self._request("GET", f"conversations/{conversation_id}/documents")
        return [Document.from_row(row) for row in response.json()]

    async def upload_document(self, conversation_id: str, file_path: Path) -> Document:
        """Upload file as multipart form data

        Backend returns {status, chunks, path, doc_id}.
        """
        path = Path(file_path)
        mime_type, _ = mimetypes.guess_type(path.name)

        with open(path, "rb") as f:
            files = {"file": (path.name, f, mime_type or "application/octet-stream")}
            response = await self._request(
                "POST", f"conversations/{conversation_id}/documents", files=files
            )
        data = response.json()
        logger.info(f"Uploaded {path.name}: status={data.get('status')}, chunks={data.get('chunks')}")
        return Document(
            id=str(data["doc_id"]),
            conversation_id=conversation_id,
            filename=path.name,
            upload_date=utc_now(),
            is_included=True,
            storage_path=data.get("path"),
        )

    async def delete_document(self, conversation_id: str, document_id: str) -> None:
        """Delete document"""
        await self._request("DELETE", f"conversations/{conversation_id}/documents/{document_id}")

    async def set_document_included(
        self, conversation_id: str, document_id: str, is_included: bool
    ) -> None:
        """Toggle whether the document is used as AI context"""
        await self._request(
            "PATCH",
            f"conversations/{conversation_id}/documents/{document_id}",
            json={"include": is_included},
        )

    async def get_document_url(self, conversation_id: str, document_id: str) -> str:
        """Signed URL for document preview"""
        response = await self._request(
            "GET", f"conversations/{conversation_id}/documents/{document_id}/url"
        )
        return response.json()["url"]
