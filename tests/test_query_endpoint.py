"""Integration tests for the session, upload and query endpoints."""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))


@pytest.fixture
def pipeline():
    """Mock RAGPipeline returning a two-chunk index."""
    from models.chunk import Chunk, ScoredChunk

    index = [
        Chunk(chunk_id="page-1-0", text="Test chunk text", page_number=1).with_embedding([1.0, 0.0]),
        Chunk(chunk_id="page-2-0", text="Other chunk text", page_number=2).with_embedding([0.0, 1.0]),
    ]

    async def process_document(file_bytes, on_progress):
        on_progress("Parsing PDF...", 10)
        return index

    pipeline = Mock()
    pipeline.process_document = AsyncMock(side_effect=process_document)
    pipeline.answer_with_sources = AsyncMock(return_value=(
        "This is a test answer.",
        [ScoredChunk(chunk=index[0], relevance_score=0.85)]
    ))
    return pipeline


@pytest.fixture
def client(pipeline):
    """Create a test client with a session manager backed by the mock pipeline."""
    import main
    from services.session_manager import SessionManager

    # TestClient is not used as a context manager, so startup_event never runs
    main.session_manager = SessionManager(pipeline)
    yield TestClient(main.app)


@pytest.fixture
def session_id(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def _upload(client, session_id, content=b"%PDF-1.4 fake", filename="manual.pdf", content_type="application/pdf"):
    return client.post(
        f"/sessions/{session_id}/document",
        files={"file": (filename, content, content_type)}
    )


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestSessionEndpoints:

    def test_create_and_get_session(self, client, session_id):
        response = client.get(f"/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "idle"
        assert data["chunk_count"] == 0

    def test_unknown_session(self, client):
        assert client.get("/sessions/sess_missing").status_code == 404
        assert client.post("/sessions/sess_missing/query", json={"question": "hi"}).status_code == 404

    def test_delete_session(self, client, session_id):
        assert client.delete(f"/sessions/{session_id}").status_code == 204
        assert client.get(f"/sessions/{session_id}").status_code == 404
        assert client.delete(f"/sessions/{session_id}").status_code == 404


class TestUploadEndpoint:

    def test_upload_success(self, client, session_id, pipeline):
        response = _upload(client, session_id)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["progress_value"] == 100
        assert data["chunk_count"] == 2
        assert data["filename"] == "manual.pdf"
        assert pipeline.process_document.call_args.args[0] == b"%PDF-1.4 fake"

    def test_upload_rejects_non_pdf(self, client, session_id):
        response = _upload(client, session_id, filename="notes.txt", content_type="text/plain")
        assert response.status_code == 400

    def test_upload_rejects_empty_file(self, client, session_id):
        response = _upload(client, session_id, content=b"")
        assert response.status_code == 400

    def test_upload_too_large(self, client, session_id, monkeypatch):
        import main
        monkeypatch.setattr(main, "MAX_UPLOAD_BYTES", 4)

        response = _upload(client, session_id)
        assert response.status_code == 413

    def test_upload_parse_error(self, client, session_id, pipeline):
        from services.document_loader import ParseError
        pipeline.process_document.side_effect = ParseError("Unable to read PDF")

        response = _upload(client, session_id)

        assert response.status_code == 422
        assert "Failed to process the PDF" in response.json()["detail"]
        assert client.get(f"/sessions/{session_id}").json()["status"] == "error"

    def test_upload_failure_after_session_deleted(self, client, session_id, pipeline):
        """A session deleted mid-upload still gets the upload's own error back."""
        import main
        from services.document_loader import ParseError

        async def delete_then_fail(file_bytes, on_progress):
            main.session_manager.delete_session(session_id)
            raise ParseError("Unable to read PDF")

        pipeline.process_document.side_effect = delete_then_fail

        response = _upload(client, session_id)

        assert response.status_code == 422
        assert "Failed to process the PDF" in response.json()["detail"]
        assert client.get(f"/sessions/{session_id}").status_code == 404

    def test_upload_while_busy(self, client, session_id):
        import main
        from models.session import ProcessingStatus
        main.session_manager.get_session(session_id).status = ProcessingStatus.EMBEDDING

        response = _upload(client, session_id)

        assert response.status_code == 409


class TestQueryEndpoint:

    def test_query_success(self, client, session_id, pipeline):
        _upload(client, session_id)

        response = client.post(f"/sessions/{session_id}/query", json={"question": "What is this?"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"]["text"] == "This is a test answer."
        assert data["message"]["sender"] == "ai"
        assert data["sources"] == [{"chunk_id": "page-1-0", "page": 1, "relevance_score": 0.85}]
        assert pipeline.answer_with_sources.call_args.args[0] == "What is this?"

    def test_query_without_document(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query", json={"question": "What is this?"})

        assert response.status_code == 409
        assert "No document loaded" in response.json()["detail"]

    def test_query_blank_question(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query", json={"question": "  "})
        assert response.status_code == 400

    def test_query_missing_question(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/query", json={})
        assert response.status_code == 422

    def test_generation_failure_returns_apology(self, client, session_id, pipeline):
        from services.llm_client import GenerationError, LLMError
        _upload(client, session_id)
        pipeline.answer_with_sources.side_effect = GenerationError(
            LLMError(code="RATE_LIMIT_ERROR", message="Rate limit exceeded.", details={})
        )

        response = client.post(f"/sessions/{session_id}/query", json={"question": "What is this?"})

        assert response.status_code == 200
        assert response.json()["message"]["text"].startswith("Sorry, I encountered an error")
        assert response.json()["sources"] == []

    def test_message_history(self, client, session_id):
        _upload(client, session_id)
        client.post(f"/sessions/{session_id}/query", json={"question": "First?"})

        response = client.get(f"/sessions/{session_id}/messages")

        assert response.status_code == 200
        messages = response.json()
        assert [m["sender"] for m in messages] == ["user", "ai"]
        assert messages[0]["text"] == "First?"


class TestShutdown:

    @pytest.mark.asyncio
    async def test_shutdown_closes_embedding_client(self, client, pipeline):
        import main
        pipeline.embedding_model.aclose = AsyncMock()

        await main.shutdown_event()

        pipeline.embedding_model.aclose.assert_awaited_once()
