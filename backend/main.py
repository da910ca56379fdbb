"""Main entry point for the DocQA RAG API."""
import logging
from typing import List
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, MAX_UPLOAD_BYTES
from logger import setup_logging
from models.api import QueryRequest, QueryResponse, MessageResponse, SessionResponse, Source
from models.conversation import Message
from models.session import DocumentSession
from services.document_loader import ParseError
from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.rag_pipeline import RAGPipeline, NoDocumentError
from services.session_manager import SessionManager, SessionNotFoundError, DocumentBusyError

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="DocQA RAG",
    description="Ask questions about an uploaded PDF, answered from its most relevant passages",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialized on startup
session_manager: SessionManager = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global session_manager

    logger.info("Initializing DocQA RAG services...")

    try:
        embedding_model = EmbeddingModel()
        llm_client = LLMClient()
        pipeline = RAGPipeline(embedding_model=embedding_model, llm_client=llm_client)
        session_manager = SessionManager(pipeline)
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Release the embedding model's HTTP connections."""
    if session_manager is not None:
        await session_manager.pipeline.embedding_model.aclose()
        logger.info("Closed embedding HTTP client")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "DocQA RAG API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "docqa-rag",
        "version": "1.0.0"
    }


@app.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session() -> SessionResponse:
    """Start a new session with no document."""
    return _session_response(session_manager.create_session())


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    """Processing status and progress of a session's document."""
    return _session_response(_get_session_or_404(session_id))


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str) -> None:
    """Discard a session, its index and its chat history."""
    try:
        session_manager.delete_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/sessions/{session_id}/document", response_model=SessionResponse)
async def upload_document(session_id: str, file: UploadFile = File(...)) -> SessionResponse:
    """
    Upload a PDF and build the session's document index.

    Replaces any previously uploaded document. Returns once indexing is
    complete; progress can be polled on GET /sessions/{session_id} meanwhile.

    Raises:
        HTTPException: 400 for a non-PDF or empty file, 404 for an unknown
            session, 409 while another upload is in flight, 413 when the file
            is too large, 422 when the PDF cannot be parsed
    """
    session = _get_session_or_404(session_id)

    filename = file.filename or "document.pdf"
    if file.content_type not in ("application/pdf", "application/octet-stream") and not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    file_bytes = await file.read()
    if not file_bytes:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(file_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"File exceeds the {MAX_UPLOAD_BYTES} byte limit")

    logger.info(f"Processing upload {filename} ({len(file_bytes)} bytes) for session {session_id}")

    # the session may be deleted while indexing runs; reuse the object fetched above
    try:
        session = await session_manager.upload_document(session_id, file_bytes, filename)
    except DocumentBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ParseError:
        raise HTTPException(status_code=422, detail=session.error_message)
    except Exception as e:
        logger.error(f"Unexpected error processing upload: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=session.error_message)

    return _session_response(session)


@app.post("/sessions/{session_id}/query", response_model=QueryResponse)
async def query_endpoint(session_id: str, request: QueryRequest) -> QueryResponse:
    """
    Answer a question about the session's document.

    Provider failures during answering come back as a normal response whose
    message is an apology, so the chat can carry on.

    Raises:
        HTTPException: 400 for a blank question, 404 for an unknown session,
            409 when no document has been indexed
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question field is required and cannot be empty")

    _get_session_or_404(session_id)
    logger.info(f"Processing query: {request.question[:100]}...")

    try:
        reply, scored_chunks = await session_manager.ask(session_id, request.question)
    except NoDocumentError as e:
        raise HTTPException(status_code=409, detail=str(e))

    sources = [
        Source(
            chunk_id=item.chunk.chunk_id,
            page=item.chunk.page_number,
            relevance_score=item.relevance_score
        )
        for item in scored_chunks
    ]
    return QueryResponse(message=_message_response(reply), sources=sources)


@app.get("/sessions/{session_id}/messages", response_model=List[MessageResponse])
async def list_messages(session_id: str) -> List[MessageResponse]:
    """Chat history of the session, oldest first."""
    session = _get_session_or_404(session_id)
    return [_message_response(message) for message in session.messages]


def _get_session_or_404(session_id: str) -> DocumentSession:
    try:
        return session_manager.get_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _session_response(session: DocumentSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        status=session.status,
        progress_message=session.progress_message,
        progress_value=session.progress_value,
        filename=session.filename,
        chunk_count=len(session.index),
        error_message=session.error_message,
        created_at=session.created_at
    )


def _message_response(message: Message) -> MessageResponse:
    return MessageResponse(
        message_id=message.message_id,
        text=message.text,
        sender=message.sender,
        timestamp=message.timestamp
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
