"""Retrieval engine that ranks document sections against a question."""
import logging
import re
from typing import List, Optional, Sequence

from models.chunk import Chunk, ScoredChunk
from config import TOP_K, MIN_TOKEN_LENGTH, TITLE_MATCH_WEIGHT, CONTENT_MATCH_WEIGHT

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Select the sections most relevant to a question by lexical term presence."""

    def __init__(
        self,
        top_k: int = TOP_K,
        title_weight: int = TITLE_MATCH_WEIGHT,
        content_weight: int = CONTENT_MATCH_WEIGHT,
        min_token_length: int = MIN_TOKEN_LENGTH
    ):
        """
        Initialize the retrieval engine.

        Args:
            top_k: Default maximum number of sections returned
            title_weight: Score added when a query term appears in a section title
            content_weight: Score added when a query term appears in a section body
            min_token_length: Shorter query words are ignored
        """
        self.top_k = top_k
        self.title_weight = title_weight
        self.content_weight = content_weight
        # ASCII word characters only: "definições" yields the term "defini"
        self.token_pattern = re.compile(rf"\b\w{{{min_token_length},}}\b", re.ASCII)

    def tokenize(self, question: str) -> List[str]:
        """
        Extract the distinct, lower-cased query terms of a question.

        Args:
            question: User question

        Returns:
            Unique terms in order of first appearance
        """
        if not question:
            return []
        terms = self.token_pattern.findall(question.lower())
        return list(dict.fromkeys(terms))

    def score_chunks(self, chunks: Sequence[Chunk], terms: Sequence[str]) -> List[ScoredChunk]:
        """
        Score every chunk by which query terms it contains.

        Each term counts once per field: a title hit adds ``title_weight`` and
        a content hit adds ``content_weight``, however often the term repeats.

        Args:
            chunks: Document sections in document order
            terms: Lower-cased query terms

        Returns:
            One ScoredChunk per input chunk, in the same order
        """
        scored = []
        for chunk in chunks:
            title = chunk.title.lower()
            content = chunk.content.lower()
            score = 0
            for term in terms:
                if term in title:
                    score += self.title_weight
                if term in content:
                    score += self.content_weight
            scored.append(ScoredChunk(chunk=chunk, score=score))
        return scored

    def rank(self, chunks: Sequence[Chunk], question: str) -> List[ScoredChunk]:
        """
        Score and order all matching chunks, best first.

        Chunks with equal scores keep their document order.

        Args:
            chunks: Document sections in document order
            question: User question

        Returns:
            Scored chunks with a score above zero, empty if the question has no usable terms
        """
        terms = self.tokenize(question)
        if not terms:
            logger.info("Question has no usable terms, skipping ranking")
            return []

        scored = [item for item in self.score_chunks(chunks, terms) if item.score > 0]
        # sorted() is stable, ties stay in document order
        scored = sorted(scored, key=lambda item: item.score, reverse=True)

        logger.debug(
            f"Ranked {len(scored)} of {len(chunks)} sections",
            extra={"terms": terms}
        )
        return scored

    def retrieve(self, chunks: Sequence[Chunk], question: str, top_k: Optional[int] = None) -> List[Chunk]:
        """
        Return the sections most relevant to a question.

        Args:
            chunks: Document sections in document order
            question: User question
            top_k: Maximum number of sections (defaults to the engine's)

        Returns:
            At most ``top_k`` chunks ordered by descending relevance
        """
        if top_k is None:
            top_k = self.top_k

        ranked = self.rank(chunks, question)
        selected = [item.chunk for item in ranked[:top_k]]

        if selected:
            logger.info(
                f"Retrieved {len(selected)} sections",
                extra={"top_score": ranked[0].score, "section_ids": [c.id for c in selected]}
            )
        else:
            logger.info("No relevant sections found for question")
        return selected
