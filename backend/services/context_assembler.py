"""Builds the context handed to the LLM from ranked sections and chat history."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.chunk import Chunk
from models.conversation import ConversationTurn
from config import MAX_HISTORY_TURNS

logger = logging.getLogger(__name__)

CONTEXT_HEADER = (
    "CONTEXT: The following sections were extracted from the document "
    "because they are relevant to the user's question:"
)
SECTION_DELIMITER = "\n\n---\n"


@dataclass
class AssembledContext:
    """Everything an LLM client needs to answer one question."""
    context_block: str
    trimmed_history: List[ConversationTurn]
    question: str


class ContextAssembler:
    """Combine ranked sections and recent history into an LLM payload."""

    def __init__(self, max_history_turns: int = MAX_HISTORY_TURNS):
        self.max_history_turns = max_history_turns

    def assemble(
        self,
        ranked_chunks: Sequence[Chunk],
        history: Sequence[ConversationTurn],
        question: str
    ) -> Optional[AssembledContext]:
        """
        Build the context for a question.

        Args:
            ranked_chunks: Sections ordered by relevance, most relevant first
            history: Conversation so far, ending with the turn for ``question``
            question: The question being answered

        Returns:
            AssembledContext, or None when there is no relevant section, in
            which case the LLM must not be called
        """
        if not ranked_chunks:
            return None

        return AssembledContext(
            context_block=self.build_context_block(ranked_chunks),
            trimmed_history=self.trim_history(history),
            question=question
        )

    @staticmethod
    def build_context_block(ranked_chunks: Sequence[Chunk]) -> str:
        """Format sections in ranked order between horizontal delimiters."""
        sections = SECTION_DELIMITER.join(
            f'Section "{chunk.title}":\n{chunk.content}' for chunk in ranked_chunks
        )
        return f"{CONTEXT_HEADER}{SECTION_DELIMITER}{sections}\n---"

    def trim_history(self, history: Sequence[ConversationTurn]) -> List[ConversationTurn]:
        """
        Drop the just-appended question turn and keep the most recent turns.

        Args:
            history: Conversation including the current question as its last turn

        Returns:
            At most ``max_history_turns`` turns preceding the current question
        """
        previous = list(history[:-1])
        if self.max_history_turns <= 0:
            return []
        trimmed = previous[-self.max_history_turns:]
        if len(trimmed) < len(previous):
            logger.debug(f"Trimmed history from {len(previous)} to {len(trimmed)} turns")
        return trimmed
