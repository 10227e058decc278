"""Request and response schemas for the Legal Eagle API."""
from typing import List, Optional
from pydantic import BaseModel, Field


class ChunkModel(BaseModel):
    """A document section as exposed over the API."""
    id: str
    title: str
    content: str


class TurnModel(BaseModel):
    role: str
    content: str


class DocumentSummary(BaseModel):
    file_name: str
    chunk_count: int


class DocumentListResponse(BaseModel):
    documents: List[DocumentSummary]


class DocumentResponse(BaseModel):
    file_name: str
    chunks: List[ChunkModel]
    message: Optional[str] = None


class QueryRequest(BaseModel):
    question: str = Field(..., description="Question about the active document")
    provider: Optional[str] = Field(
        None, description="gemini, groq or ollama; defaults to the configured provider"
    )


class QueryResponse(BaseModel):
    answer: str
    outcome: str
    references: List[ChunkModel]
    file_name: Optional[str] = None


class SessionResponse(BaseModel):
    state: str
    file_name: Optional[str] = None
    chunk_count: int = 0
    history: List[TurnModel]
    references: Optional[List[ChunkModel]] = None


class ProviderTestRequest(BaseModel):
    provider: str
    api_key: Optional[str] = None
    url: Optional[str] = None


class ProviderTestResponse(BaseModel):
    success: bool
    message: str
