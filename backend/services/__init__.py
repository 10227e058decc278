"""Services for Legal Eagle."""
from .heading_matcher import HeadingMatcher, HeadingMatch, ArticleHeadingMatcher
from .chunking_engine import ChunkingEngine
from .retrieval_engine import RetrievalEngine
from .context_assembler import ContextAssembler, AssembledContext
from .document_loader import DocumentLoader
from .document_library import DocumentLibrary
from .llm_client import (
    LLMClient, LLMError, LLMClientError, ConnectionStatus,
    GeminiClient, GroqClient, OllamaClient,
    GeminiConfig, GroqConfig, OllamaConfig,
    create_llm_client, load_provider_config,
)
from .conversation_manager import (
    ConversationManager, ChatReply, ReplyOutcome, SessionState,
    SessionBusyError, NoActiveDocumentError,
)

__all__ = [
    'HeadingMatcher', 'HeadingMatch', 'ArticleHeadingMatcher', 'ChunkingEngine',
    'RetrievalEngine', 'ContextAssembler', 'AssembledContext', 'DocumentLoader',
    'DocumentLibrary', 'LLMClient', 'LLMError', 'LLMClientError', 'ConnectionStatus',
    'GeminiClient', 'GroqClient', 'OllamaClient', 'GeminiConfig', 'GroqConfig',
    'OllamaConfig', 'create_llm_client', 'load_provider_config', 'ConversationManager',
    'ChatReply', 'ReplyOutcome', 'SessionState', 'SessionBusyError', 'NoActiveDocumentError',
]
