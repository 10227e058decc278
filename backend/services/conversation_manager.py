"""Conversation manager for the active document session."""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from models.chunk import Chunk
from models.conversation import ConversationTurn, Role
from services.retrieval_engine import RetrievalEngine
from services.context_assembler import ContextAssembler
from services.llm_client import LLMClientError, ProviderConfig, create_llm_client

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of the chat session."""
    INITIAL = "initial"
    READY = "ready"
    ANSWERING = "answering"


class ReplyOutcome(str, Enum):
    """How a question was resolved."""
    ANSWERED = "answered"
    EMPTY_QUERY = "empty_query"
    NO_RELEVANT_SECTION = "no_relevant_section"
    EMPTY_DOCUMENT = "empty_document"
    PROVIDER_NOT_CONFIGURED = "provider_not_configured"
    PROVIDER_ERROR = "provider_error"


class SessionBusyError(Exception):
    """Raised when a question arrives while another is still being answered."""


class NoActiveDocumentError(Exception):
    """Raised when a question arrives before any document was opened."""


@dataclass
class ChatReply:
    """The model turn produced for a question, plus the sections it used."""
    answer: str
    outcome: ReplyOutcome
    references: List[Chunk] = field(default_factory=list)


class ConversationManager:
    """
    Holds the active document, its chat history and the sections last cited.

    Only one question may be in flight at a time; a question submitted while
    another is being answered raises SessionBusyError.
    """

    EMPTY_QUERY_MESSAGE = (
        "Please ask a more specific question so I can find the information in the document."
    )
    NO_RELEVANT_SECTION_MESSAGE = (
        "I couldn't find any relevant section in the document to answer your question. "
        "Try rephrasing it."
    )
    EMPTY_DOCUMENT_MESSAGE = (
        "No text could be extracted from this document, so there is nothing to chat about."
    )
    PROVIDER_NOT_CONFIGURED_MESSAGE = "Error: {reason}. Please configure the AI provider first."
    PROVIDER_ERROR_MESSAGE = "Sorry, I ran into an error while generating the answer. Please try again."

    def __init__(
        self,
        retrieval_engine: Optional[RetrievalEngine] = None,
        context_assembler: Optional[ContextAssembler] = None
    ):
        self.retrieval_engine = retrieval_engine or RetrievalEngine()
        self.context_assembler = context_assembler or ContextAssembler()
        self._lock = threading.Lock()
        self.state = SessionState.INITIAL
        self.file_name: Optional[str] = None
        self.chunks: Tuple[Chunk, ...] = ()
        self.history: List[ConversationTurn] = []
        self.active_references: Optional[List[Chunk]] = None
        logger.info("ConversationManager initialized")

    def open_document(self, file_name: str, chunks: Sequence[Chunk], from_library: bool = False) -> None:
        """
        Make a document the subject of the conversation.

        Clears the previous history and references and greets the user.

        Args:
            file_name: Name of the document
            chunks: The document's sections
            from_library: True when the document was loaded from the library
                rather than freshly uploaded

        Raises:
            SessionBusyError: If a question is still being answered
        """
        with self._lock:
            if self.state == SessionState.ANSWERING:
                raise SessionBusyError("Cannot switch documents while a question is being answered")

            self.file_name = file_name
            self.chunks = tuple(chunks)
            self.active_references = None

            if from_library:
                greeting = f'Document "{file_name}" loaded from your library. You can start asking questions.'
            else:
                greeting = (
                    f'Your document "{file_name}" has been processed and structured. '
                    f'We found {len(self.chunks)} articles/sections. You can now "chat" with it. '
                    f'Ask a question to get started.'
                )
            self.history = [ConversationTurn(role=Role.MODEL, content=greeting)]
            self.state = SessionState.READY

        logger.info(
            f"Opened document {file_name!r}",
            extra={"chunks": len(self.chunks), "from_library": from_library}
        )

    def reset(self) -> None:
        """Close the active document and return to the initial state."""
        with self._lock:
            if self.state == SessionState.ANSWERING:
                raise SessionBusyError("Cannot reset the session while a question is being answered")
            self.state = SessionState.INITIAL
            self.file_name = None
            self.chunks = ()
            self.history = []
            self.active_references = None
        logger.info("Session reset")

    def ask(self, question: str, provider_config: ProviderConfig) -> ChatReply:
        """
        Answer a question about the active document.

        Args:
            question: User question
            provider_config: LLM backend to use for this question

        Returns:
            ChatReply whose answer has also been appended to the history

        Raises:
            NoActiveDocumentError: If no document is open
            SessionBusyError: If another question is still being answered
        """
        with self._lock:
            if self.state == SessionState.INITIAL:
                raise NoActiveDocumentError("Open a document before asking questions")
            if self.state == SessionState.ANSWERING:
                raise SessionBusyError("A question is already being answered")

            try:
                llm_client = create_llm_client(provider_config)
            except ValueError as e:
                logger.warning(f"AI provider not configured: {e}")
                return self._reply(
                    self.PROVIDER_NOT_CONFIGURED_MESSAGE.format(reason=e),
                    ReplyOutcome.PROVIDER_NOT_CONFIGURED
                )

            self.state = SessionState.ANSWERING
            self.history.append(ConversationTurn(role=Role.USER, content=question))
            history = list(self.history)
            chunks = self.chunks

        try:
            return self._answer(question, chunks, history, llm_client)
        finally:
            with self._lock:
                self.state = SessionState.READY

    def _answer(self, question, chunks, history, llm_client) -> ChatReply:
        if not chunks:
            return self._reply(self.EMPTY_DOCUMENT_MESSAGE, ReplyOutcome.EMPTY_DOCUMENT)

        if not self.retrieval_engine.tokenize(question):
            return self._reply(self.EMPTY_QUERY_MESSAGE, ReplyOutcome.EMPTY_QUERY)

        relevant_chunks = self.retrieval_engine.retrieve(chunks, question)
        context = self.context_assembler.assemble(relevant_chunks, history, question)
        if context is None:
            self.active_references = None
            return self._reply(self.NO_RELEVANT_SECTION_MESSAGE, ReplyOutcome.NO_RELEVANT_SECTION)

        self.active_references = relevant_chunks

        try:
            answer = llm_client.get_interpretation(
                context.context_block, context.question, context.trimmed_history
            )
        except LLMClientError as e:
            logger.error(f"LLM client error: {e.error.message}", extra={"error_code": e.error.code})
            return self._reply(
                e.error.message or self.PROVIDER_ERROR_MESSAGE,
                ReplyOutcome.PROVIDER_ERROR,
                references=relevant_chunks
            )
        except Exception as e:
            logger.error(f"Unexpected error while answering: {str(e)}", exc_info=True)
            return self._reply(
                self.PROVIDER_ERROR_MESSAGE,
                ReplyOutcome.PROVIDER_ERROR,
                references=relevant_chunks
            )

        return self._reply(answer, ReplyOutcome.ANSWERED, references=relevant_chunks)

    def _reply(self, answer: str, outcome: ReplyOutcome, references: Optional[List[Chunk]] = None) -> ChatReply:
        self.history.append(ConversationTurn(role=Role.MODEL, content=answer))
        logger.info(f"Replied to question: outcome={outcome.value}")
        return ChatReply(answer=answer, outcome=outcome, references=list(references or []))
