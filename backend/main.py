"""Main entry point for the Legal Eagle API."""
import logging
from typing import List, Optional, Sequence
from fastapi import FastAPI, HTTPException, UploadFile, File
from fastapi.middleware.cors import CORSMiddleware

from config import PORT, LOG_LEVEL, CORS_ORIGINS, AI_PROVIDER
from logger import setup_logging
from models.chunk import Chunk
from models.api import (
    ChunkModel, TurnModel, DocumentSummary, DocumentListResponse, DocumentResponse,
    QueryRequest, QueryResponse, SessionResponse, ProviderTestRequest, ProviderTestResponse,
)
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader
from services.document_library import DocumentLibrary
from services.llm_client import GroqClient, OllamaClient, load_provider_config
from services.conversation_manager import (
    ConversationManager, SessionBusyError, NoActiveDocumentError,
)

# Initialize logging
setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Legal Eagle",
    description="Chat with legal documents segmented into articles",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
chunking_engine: ChunkingEngine = None
document_loader: DocumentLoader = None
document_library: Optional[DocumentLibrary] = None
conversation_manager: ConversationManager = None

LIBRARY_SAVE_FAILED_MESSAGE = "Note: the document could not be saved to your library."


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global chunking_engine, document_loader, document_library, conversation_manager

    logger.info("Initializing Legal Eagle services...")

    chunking_engine = ChunkingEngine()
    document_loader = DocumentLoader()
    conversation_manager = ConversationManager()

    try:
        document_library = DocumentLibrary()
    except ValueError as e:
        # Chat still works for uploads; only the library endpoints are unavailable
        logger.warning(f"Document library disabled: {e}")
        document_library = None

    logger.info("All services initialized successfully")


def _chunk_models(chunks: Sequence[Chunk]) -> List[ChunkModel]:
    return [ChunkModel(id=c.id, title=c.title, content=c.content) for c in chunks]


def _require_library() -> DocumentLibrary:
    if document_library is None:
        raise HTTPException(status_code=503, detail="Document library is not configured")
    return document_library


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Legal Eagle API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "legal-eagle",
        "version": "1.0.0",
        "library_enabled": document_library is not None
    }


@app.get("/documents", response_model=DocumentListResponse)
def list_documents() -> DocumentListResponse:
    """List the documents saved in the library."""
    library = _require_library()
    documents = library.get_saved_documents()
    return DocumentListResponse(documents=[
        DocumentSummary(file_name=name, chunk_count=len(chunks))
        for name, chunks in documents.items()
    ])


@app.post("/documents", response_model=DocumentResponse)
async def upload_document(file: UploadFile = File(...)) -> DocumentResponse:
    """
    Upload a PDF, segment it into sections and open it for chat.

    The segmented document is saved to the library (replacing any document
    with the same filename) when the library is configured.
    """
    file_name = file.filename or "document.pdf"
    pdf_bytes = await file.read()

    try:
        text = document_loader.extract_text(pdf_bytes, file_name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Failed to process the PDF: {str(e)}")

    chunks = chunking_engine.segment(text)
    logger.info(f"Segmented {file_name}", extra={"file_name": file_name, "chunks": len(chunks)})

    saved = False
    if document_library is not None:
        try:
            document_library.save_document(file_name, chunks)
            saved = True
        except Exception as e:
            # Chat continues with the segmented document; only persistence is lost
            logger.error(f"Could not save {file_name} to the library: {e}", exc_info=True)

    try:
        conversation_manager.open_document(file_name, chunks)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    message = conversation_manager.history[-1].content
    if document_library is not None and not saved:
        message = f"{message} {LIBRARY_SAVE_FAILED_MESSAGE}"

    return DocumentResponse(
        file_name=file_name,
        chunks=_chunk_models(chunks),
        message=message
    )


@app.get("/documents/{file_name}", response_model=DocumentResponse)
def get_document(file_name: str) -> DocumentResponse:
    """Return a saved document's sections."""
    chunks = _require_library().get_document(file_name)
    if chunks is None:
        raise HTTPException(status_code=404, detail=f"Document {file_name!r} not found")
    return DocumentResponse(file_name=file_name, chunks=_chunk_models(chunks))


@app.post("/documents/{file_name}/open", response_model=DocumentResponse)
def open_document(file_name: str) -> DocumentResponse:
    """Open a saved document for chat."""
    chunks = _require_library().get_document(file_name)
    if chunks is None:
        raise HTTPException(status_code=404, detail=f"Document {file_name!r} not found")

    try:
        conversation_manager.open_document(file_name, chunks, from_library=True)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return DocumentResponse(
        file_name=file_name,
        chunks=_chunk_models(chunks),
        message=conversation_manager.history[-1].content
    )


@app.delete("/documents/{file_name}")
def delete_document(file_name: str):
    """Delete a document from the library."""
    library = _require_library()
    try:
        library.delete_document(file_name)
    except Exception as e:
        logger.error(f"Could not delete {file_name}: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Could not delete the document")
    return {"status": "deleted", "file_name": file_name}


@app.get("/session", response_model=SessionResponse)
def get_session() -> SessionResponse:
    """Return the active document, chat history and cited sections."""
    references = conversation_manager.active_references
    return SessionResponse(
        state=conversation_manager.state.value,
        file_name=conversation_manager.file_name,
        chunk_count=len(conversation_manager.chunks),
        history=[
            TurnModel(role=turn.role.value, content=turn.content)
            for turn in conversation_manager.history
        ],
        references=_chunk_models(references) if references is not None else None
    )


@app.post("/session/reset")
def reset_session():
    """Close the active document."""
    try:
        conversation_manager.reset()
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "reset"}


@app.post("/query", response_model=QueryResponse)
def query_endpoint(request: QueryRequest) -> QueryResponse:
    """
    Answer a question about the active document.

    Args:
        request: QueryRequest with the question and an optional provider

    Returns:
        QueryResponse with the answer, how it was resolved and the sections used

    Raises:
        HTTPException: For validation errors, no open document or a busy session
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question field is required and cannot be empty")

    try:
        provider_config = load_provider_config(request.provider or AI_PROVIDER)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Processing query: {request.question[:100]}...")

    try:
        reply = conversation_manager.ask(request.question, provider_config)
    except NoActiveDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return QueryResponse(
        answer=reply.answer,
        outcome=reply.outcome.value,
        references=_chunk_models(reply.references),
        file_name=conversation_manager.file_name
    )


@app.post("/providers/test", response_model=ProviderTestResponse)
def provider_connection_test(request: ProviderTestRequest) -> ProviderTestResponse:
    """Check Groq credentials or an Ollama server URL before saving them."""
    provider = request.provider.strip().lower()
    if provider == "groq":
        status = GroqClient.test_connection(request.api_key or "")
    elif provider == "ollama":
        status = OllamaClient.test_connection(request.url or "")
    else:
        raise HTTPException(
            status_code=400,
            detail=f"Connection tests are only available for groq and ollama, not {request.provider!r}"
        )
    return ProviderTestResponse(success=status.success, message=status.message)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Legal Eagle API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
