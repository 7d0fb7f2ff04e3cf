"""Document upload, inclusion, deletion and preview for the session"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from docdrift.models.schemas import DEFAULT_PREVIEW_TITLE, Document, PreviewDoc
from docdrift.session.selection import merge_loaded
from docdrift.session.sync import EntityKind, SyncOperation, SyncResult
from docdrift.utils.errors import ValidationError
from docdrift.utils.time_utils import local_entity_id, utc_now

if TYPE_CHECKING:
    from docdrift.session.controller import SessionController

logger = logging.getLogger(__name__)


class DocumentHandlersMixin:
    """Mixin for the document collection of the selected conversation"""

    async def load_documents(self: "SessionController", conversation_id: str, fresh: bool = False):
        """Replace documents with the server's list (see load_messages)"""
        baseline = [] if fresh else list(self.state.documents)
        try:
            loaded = await self.api_client.list_documents(conversation_id)
        except Exception as e:
            logger.error(f"Failed to load documents for {conversation_id}: {e}", exc_info=True)
            if self._is_current(conversation_id):
                self.toast_manager.error("Failed to load documents. Using offline mode.")
                self.state.documents = merge_loaded([], self.state.documents, baseline)
            return

        if not self._is_current(conversation_id):
            logger.debug(f"Discarding documents of {conversation_id}: selection changed")
            return

        self.state.documents = merge_loaded(loaded, self.state.documents, baseline)
        logger.info(f"Loaded {len(loaded)} documents for {conversation_id}")

    async def upload_document(self: "SessionController", file_path: Union[str, Path]) -> SyncResult:
        """
        Upload a local file to the selected (or a newly created) conversation.

        If the upload fails after a conversation exists, a local-only document
        is shown so the user still sees the file.
        """
        path = Path(file_path)
        if not path.is_file():
            raise ValidationError(f"File not found: {path}")
        self._require_ready()

        try:
            ensured = await self.ensure_active_conversation()
        except Exception as e:
            return self.synchronizer.fail(EntityKind.DOCUMENT, SyncOperation.UPLOAD, e)

        conversation_id = ensured.conversation_id
        file_size = path.stat().st_size

        def local_document() -> Document:
            return self._append_document(
                Document(
                    id=local_entity_id(),
                    conversation_id=conversation_id,
                    filename=path.name,
                    file_size=file_size,
                    upload_date=utc_now(),
                    is_included=True,
                )
            )

        return await self.synchronizer.run(
            EntityKind.DOCUMENT,
            SyncOperation.UPLOAD,
            lambda: self.api_client.upload_document(conversation_id, path),
            apply=self._append_document,
            fallback=local_document,
            subject=path.name,
        )

    def _append_document(self: "SessionController", document: Document) -> Document:
        if self._is_current(document.conversation_id):
            self.state.documents.append(document)
        return document

    async def toggle_document_include(
        self: "SessionController", document_id: str, is_included: bool
    ) -> SyncResult:
        """Set whether a document is used as AI context"""
        self._require_ready()
        conversation_id = self.state.selected_conversation_id
        if not conversation_id:
            return self.synchronizer.skipped(EntityKind.DOCUMENT, SyncOperation.TOGGLE)

        return await self.synchronizer.run(
            EntityKind.DOCUMENT,
            SyncOperation.TOGGLE,
            lambda: self.api_client.set_document_included(conversation_id, document_id, is_included),
            apply=lambda _: self._patch_document_include(conversation_id, document_id, is_included),
        )

    def _patch_document_include(
        self: "SessionController", conversation_id: str, document_id: str, is_included: bool
    ) -> Optional[Document]:
        if not self._is_current(conversation_id):
            return None
        for idx, document in enumerate(self.state.documents):
            if document.id == document_id:
                updated = document.model_copy(update={"is_included": is_included})
                self.state.documents[idx] = updated
                return updated
        return None

    async def delete_document(self: "SessionController", document_id: str) -> SyncResult:
        """Delete a document of the selected conversation"""
        self._require_ready()
        conversation_id = self.state.selected_conversation_id
        if not conversation_id:
            return self.synchronizer.skipped(EntityKind.DOCUMENT, SyncOperation.DELETE)

        return await self.synchronizer.run(
            EntityKind.DOCUMENT,
            SyncOperation.DELETE,
            lambda: self.api_client.delete_document(conversation_id, document_id),
            apply=lambda _: self._remove_document(conversation_id, document_id),
        )

    def _remove_document(
        self: "SessionController", conversation_id: str, document_id: str
    ) -> Optional[Document]:
        if not self._is_current(conversation_id):
            return None
        removed = self.state.find_document(document_id)
        self.state.documents = [d for d in self.state.documents if d.id != document_id]
        if self.state.preview and self.state.preview.document_id == document_id:
            self.state.preview = None
        return removed

    async def preview_document(self: "SessionController", document_id: str) -> Optional[PreviewDoc]:
        """Resolve a signed URL and open the document preview"""
        self._require_ready()
        conversation_id = self.state.selected_conversation_id
        if not conversation_id:
            return None

        self.state.previewing_document_id = document_id
        document = self.state.find_document(document_id)
        try:
            url = await self.api_client.get_document_url(conversation_id, document_id)
            if not self._is_current(conversation_id):
                return None
            self.state.preview = PreviewDoc(
                document_id=document_id,
                url=url,
                title=document.filename if document else DEFAULT_PREVIEW_TITLE,
            )
            return self.state.preview
        except Exception as e:
            logger.error(f"Failed to preview document {document_id}: {e}", exc_info=True)
            if self._token.alive:
                self.toast_manager.error("Failed to preview document")
            return None
        finally:
            if self._token.alive and self.state.previewing_document_id == document_id:
                self.state.previewing_document_id = None

    def close_preview(self: "SessionController"):
        self.state.preview = None
