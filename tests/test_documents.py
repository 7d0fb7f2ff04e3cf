"""Test document upload, inclusion, deletion and preview"""
import asyncio
import pytest

from docdrift.models.schemas import DEFAULT_PREVIEW_TITLE, Document, PreviewDoc
from docdrift.session.sync import SyncOutcome
from docdrift.utils.errors import ServiceError, ValidationError

from conftest import make_document


@pytest.fixture
def pdf_file(tmp_path):
    """Small file on disk to upload"""
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4\n" + b"x" * 119)
    return path


@pytest.fixture
def with_documents(seeded_session):
    seeded_session.state.documents = [
        make_document("d1", "c1"),
        make_document("d2", "c1", is_included=False),
    ]
    return seeded_session


@pytest.mark.asyncio
class TestUploadDocument:
    async def test_success_appends_server_document(self, seeded_session, mock_api, toasts, pdf_file):
        mock_api.upload_document.return_value = Document(
            id="doc-1", conversation_id="c1", filename="report.pdf", storage_path="u/report.pdf"
        )

        result = await seeded_session.upload_document(pdf_file)

        assert result.outcome == SyncOutcome.CONFIRMED
        mock_api.upload_document.assert_awaited_once_with("c1", pdf_file)
        assert [d.id for d in seeded_session.state.documents] == ["doc-1"]
        assert toasts.last().message == "report.pdf uploaded successfully"

    async def test_failure_adds_local_document(self, seeded_session, mock_api, toasts, pdf_file):
        mock_api.upload_document.side_effect = ServiceError("down", 503)

        result = await seeded_session.upload_document(pdf_file)

        assert result.outcome == SyncOutcome.FALLBACK
        documents = seeded_session.state.documents
        assert len(documents) == 1
        local = documents[0]
        assert local.filename == "report.pdf"
        assert local.file_size == 128
        assert local.is_included is True
        assert local.conversation_id == "c1"
        assert toasts.last().message == "Failed to upload document. Using offline mode."

    async def test_creates_conversation_when_none_selected(self, session, mock_api, pdf_file):
        mock_api.upload_document.return_value = Document(
            id="doc-1", conversation_id="conv-new", filename="report.pdf"
        )

        await session.upload_document(pdf_file)

        mock_api.create_conversation.assert_awaited_once_with("New Conversation 1")
        assert session.state.selected_conversation_id == "conv-new"
        assert [d.id for d in session.state.documents] == ["doc-1"]

    async def test_concurrent_send_and_upload_share_one_conversation(self, session, mock_api, pdf_file):
        mock_api.upload_document.side_effect = ServiceError("down", 503)

        sent, uploaded = await asyncio.gather(
            session.send_message("Compare both reports"),
            session.upload_document(pdf_file),
        )
        await session.drain()

        mock_api.create_conversation.assert_awaited_once_with("Compare both reports")
        assert sent.outcome == SyncOutcome.CONFIRMED
        assert uploaded.outcome == SyncOutcome.FALLBACK
        assert [c.id for c in session.state.conversations] == ["conv-new"]
        assert [m.role for m in session.state.messages] == ["user", "assistant"]
        assert [d.file_size for d in session.state.documents] == [128]
        assert session.state.documents[0].conversation_id == "conv-new"

    async def test_conversation_creation_failure_adds_nothing(self, session, mock_api, pdf_file):
        mock_api.create_conversation.side_effect = ServiceError("down", 503)

        result = await session.upload_document(pdf_file)

        assert result.outcome == SyncOutcome.REJECTED
        mock_api.upload_document.assert_not_called()
        assert session.state.documents == []

    async def test_missing_file_rejected(self, seeded_session, mock_api, tmp_path):
        with pytest.raises(ValidationError):
            await seeded_session.upload_document(tmp_path / "missing.pdf")
        mock_api.upload_document.assert_not_called()

    async def test_upload_for_abandoned_conversation_not_shown(self, seeded_session, mock_api, pdf_file):
        gate = asyncio.Event()

        async def slow_upload(cid, path):
            await gate.wait()
            return Document(id="doc-1", conversation_id=cid, filename=path.name)

        mock_api.upload_document.side_effect = slow_upload

        task = asyncio.create_task(seeded_session.upload_document(pdf_file))
        await asyncio.sleep(0)
        seeded_session.select_conversation("c2")
        gate.set()
        await task
        await seeded_session.drain()

        assert seeded_session.state.documents == []


@pytest.mark.asyncio
class TestToggleDocument:
    async def test_only_target_document_changes(self, with_documents, mock_api):
        result = await with_documents.toggle_document_include("d2", True)

        assert result.outcome == SyncOutcome.CONFIRMED
        mock_api.set_document_included.assert_awaited_once_with("c1", "d2", True)
        flags = {d.id: d.is_included for d in with_documents.state.documents}
        assert flags == {"d1": True, "d2": True}

    async def test_failure_leaves_flag_unchanged(self, with_documents, mock_api, toasts):
        mock_api.set_document_included.side_effect = ServiceError("nope", 500)

        result = await with_documents.toggle_document_include("d1", False)

        assert result.outcome == SyncOutcome.REJECTED
        assert with_documents.state.find_document("d1").is_included is True
        assert toasts.last().message == "Failed to update document"

    async def test_skipped_without_selection(self, session, mock_api):
        result = await session.toggle_document_include("d1", False)

        assert result.outcome == SyncOutcome.SKIPPED
        mock_api.set_document_included.assert_not_called()


@pytest.mark.asyncio
class TestDeleteDocument:
    async def test_success_removes_document(self, with_documents, toasts):
        result = await with_documents.delete_document("d1")

        assert result.outcome == SyncOutcome.CONFIRMED
        assert [d.id for d in with_documents.state.documents] == ["d2"]
        assert toasts.last().message == "Document deleted successfully"

    async def test_deleting_previewed_document_closes_preview(self, with_documents):
        with_documents.state.preview = PreviewDoc(document_id="d1", url="u", title="d1.pdf")

        await with_documents.delete_document("d1")

        assert with_documents.state.preview is None

    async def test_failure_keeps_document(self, with_documents, mock_api, toasts):
        mock_api.delete_document.side_effect = ServiceError("nope", 500)

        result = await with_documents.delete_document("d1")

        assert result.outcome == SyncOutcome.REJECTED
        assert [d.id for d in with_documents.state.documents] == ["d1", "d2"]
        assert toasts.last().message == "Failed to delete document"

    async def test_skipped_without_selection(self, session, mock_api):
        result = await session.delete_document("d1")

        assert result.outcome == SyncOutcome.SKIPPED
        mock_api.delete_document.assert_not_called()


@pytest.mark.asyncio
class TestPreviewDocument:
    async def test_preview_uses_filename(self, with_documents, mock_api):
        preview = await with_documents.preview_document("d1")

        mock_api.get_document_url.assert_awaited_once_with("c1", "d1")
        assert preview.url == "https://files.test/signed"
        assert preview.title == "d1.pdf"
        assert with_documents.state.preview == preview
        assert with_documents.state.previewing_document_id is None

    async def test_unknown_document_gets_default_title(self, with_documents):
        preview = await with_documents.preview_document("other")
        assert preview.title == DEFAULT_PREVIEW_TITLE

    async def test_failure_notifies(self, with_documents, mock_api, toasts):
        mock_api.get_document_url.side_effect = ServiceError("nope", 404)

        preview = await with_documents.preview_document("d1")

        assert preview is None
        assert with_documents.state.preview is None
        assert with_documents.state.previewing_document_id is None
        assert toasts.last().message == "Failed to preview document"

    async def test_close_preview(self, with_documents):
        await with_documents.preview_document("d1")
        with_documents.close_preview()
        assert with_documents.state.preview is None


@pytest.mark.asyncio
class TestLoadDocuments:
    async def test_failure_shows_offline_toast(self, with_documents, mock_api, toasts):
        mock_api.list_documents.side_effect = ServiceError("down", 503)

        await with_documents.load_documents("c1")

        assert with_documents.state.documents == []
        assert toasts.last().message == "Failed to load documents. Using offline mode."

    async def test_replaces_documents(self, with_documents, mock_api):
        mock_api.list_documents.return_value = [make_document("d3", "c1")]

        await with_documents.load_documents("c1")

        assert [d.id for d in with_documents.state.documents] == ["d3"]
