"""Data models for Legal Eagle."""
from .chunk import Chunk, ScoredChunk
from .document import Page
from .conversation import ConversationTurn, Role
from .api import (
    ChunkModel, TurnModel, DocumentSummary, DocumentListResponse, DocumentResponse,
    QueryRequest, QueryResponse, SessionResponse, ProviderTestRequest, ProviderTestResponse,
)

__all__ = [
    "Chunk",
    "ScoredChunk",
    "Page",
    "ConversationTurn",
    "Role",
    "ChunkModel",
    "TurnModel",
    "DocumentSummary",
    "DocumentListResponse",
    "DocumentResponse",
    "QueryRequest",
    "QueryResponse",
    "SessionResponse",
    "ProviderTestRequest",
    "ProviderTestResponse",
]
