"""Session manager holding per-session document indexes and chat history in memory."""
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from models.chunk import ScoredChunk
from models.conversation import Message, Sender
from models.session import DocumentSession, ProcessingStatus
from services.rag_pipeline import RAGPipeline, NoDocumentError

logger = logging.getLogger(__name__)

UPLOAD_ERROR_MESSAGE = "Failed to process the PDF. Please ensure the API key is valid and the PDF is readable."
APOLOGY_MESSAGE = "Sorry, I encountered an error while processing your request. Please try again."


class SessionNotFoundError(Exception):
    """Raised when a session id is unknown."""


class DocumentBusyError(Exception):
    """Raised when a document is uploaded while the previous one is still being indexed."""


class SessionManager:
    """Owns every DocumentSession and runs pipeline operations against them."""

    def __init__(self, pipeline: RAGPipeline):
        """
        Initialize the session manager.

        Args:
            pipeline: RAGPipeline used for uploads and queries
        """
        self.pipeline = pipeline
        self._sessions: Dict[str, DocumentSession] = {}
        logger.info("SessionManager initialized")

    def create_session(self) -> DocumentSession:
        """Create and register an empty session."""
        session = DocumentSession(
            session_id=self._generate_id("sess"),
            created_at=datetime.now()
        )
        self._sessions[session.session_id] = session
        logger.info(f"Created new session: {session.session_id}")
        return session

    def get_session(self, session_id: str) -> DocumentSession:
        """
        Look up a session.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def delete_session(self, session_id: str) -> None:
        """Drop a session and everything it holds."""
        self.get_session(session_id)
        del self._sessions[session_id]
        logger.info(f"Deleted session: {session_id}")

    async def upload_document(
        self,
        session_id: str,
        file_bytes: bytes,
        filename: Optional[str] = None
    ) -> DocumentSession:
        """
        Replace the session's document with a newly processed one.

        The previous index and chat history are discarded before processing
        starts. Uploads are rejected while a previous run is still in flight.

        Raises:
            SessionNotFoundError: If no session has this id
            DocumentBusyError: If the session is already processing a document
            ParseError: If the PDF cannot be read (session status becomes ERROR)
        """
        session = self.get_session(session_id)
        if session.is_busy:
            raise DocumentBusyError(f"Session {session_id} is still processing {session.filename}")

        session.status = ProcessingStatus.PARSING
        session.index = []
        session.messages = []
        session.filename = filename
        session.error_message = None
        session.progress_message = ""
        session.progress_value = 0

        def on_progress(message: str, value: int) -> None:
            session.progress_message = message
            session.progress_value = value
            session.status = _status_for_progress(value)

        try:
            index = await self.pipeline.process_document(file_bytes, on_progress)
        except Exception as e:
            session.status = ProcessingStatus.ERROR
            session.error_message = UPLOAD_ERROR_MESSAGE
            logger.error(
                f"Error processing document for session {session_id}: {e}",
                exc_info=True,
                extra={"session_id": session_id}
            )
            raise

        session.index = index
        session.status = ProcessingStatus.READY
        session.progress_message = "Document processed successfully!"
        session.progress_value = 100
        logger.info(
            f"Session {session_id} ready with {len(index)} chunks",
            extra={"session_id": session_id}
        )
        return session

    async def ask(self, session_id: str, question: str) -> Tuple[Message, List[ScoredChunk]]:
        """
        Answer a question and record both sides of the exchange.

        Query-time failures become an apology message rather than an error.

        Returns:
            The AI message and the scored chunks it was grounded on

        Raises:
            SessionNotFoundError: If no session has this id
            ValueError: If the question is blank
            NoDocumentError: If the session has no indexed document
        """
        session = self.get_session(session_id)
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        index = session.index
        if not index:
            raise NoDocumentError("No document loaded. Upload a PDF first.")

        session.messages.append(self._new_message(question, Sender.USER))

        try:
            answer, sources = await self.pipeline.answer_with_sources(question, index)
        except Exception as e:
            logger.error(
                f"Chat error in session {session_id}: {e}",
                exc_info=True,
                extra={"session_id": session_id}
            )
            answer, sources = APOLOGY_MESSAGE, []

        reply = self._new_message(answer, Sender.AI)
        session.messages.append(reply)
        return reply, sources

    def _new_message(self, text: str, sender: Sender) -> Message:
        return Message(
            message_id=self._generate_id("msg"),
            text=text,
            sender=sender,
            timestamp=datetime.now()
        )

    def _generate_id(self, prefix: str) -> str:
        """
        Generate a unique identifier.

        Returns:
            Unique ID string such as "sess_1a2b3c4d5e6f"
        """
        return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _status_for_progress(value: int) -> ProcessingStatus:
    """Map a pipeline progress percentage onto a processing status."""
    if value < 20:
        return ProcessingStatus.PARSING
    if value < 40:
        return ProcessingStatus.CHUNKING
    return ProcessingStatus.EMBEDDING
