"""Chunking engine that segments legal documents into addressable sections."""
import logging
from typing import List, Optional

from models.chunk import Chunk
from services.heading_matcher import HeadingMatcher, ArticleHeadingMatcher
from config import CHUNK_SIZE, CHUNK_OVERLAP, PREAMBLE_MIN_LENGTH

logger = logging.getLogger(__name__)

PREAMBLE_TITLE = "Preamble/Introduction"


class ChunkingEngine:
    """Segments extracted document text into titled chunks."""

    def __init__(
        self,
        heading_matcher: Optional[HeadingMatcher] = None,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        preamble_min_length: int = PREAMBLE_MIN_LENGTH
    ):
        """
        Initialize ChunkingEngine.

        Args:
            heading_matcher: Structural convention used to find section headings
                (defaults to legal-article headings)
            chunk_size: Window size in characters for fallback chunking
            chunk_overlap: Characters shared by adjacent fallback windows
            preamble_min_length: Text before the first heading is kept only
                when longer than this

        Raises:
            ValueError: If the overlap would stop the window from advancing
        """
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")

        self.heading_matcher = heading_matcher or ArticleHeadingMatcher()
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.preamble_min_length = preamble_min_length

    def segment(self, text: str) -> List[Chunk]:
        """
        Split a document into sections.

        Headings found by the heading matcher delimit the sections. Documents
        without any recognised heading are split into fixed-size windows
        instead.

        Args:
            text: Plain text of the whole document

        Returns:
            Chunks in document order; empty for empty or blank text
        """
        if not text or not text.strip():
            logger.info("Empty document text, nothing to segment")
            return []

        headings = self.heading_matcher.find(text)

        if not headings:
            logger.warning(
                "No section headings found, falling back to fixed-size chunking",
                extra={"text_length": len(text)}
            )
            return self.chunk_text(text)

        chunks: List[Chunk] = []

        preamble = text[:headings[0].start].strip()
        if len(preamble) > self.preamble_min_length:
            chunks.append(Chunk(id="chunk-preamble", title=PREAMBLE_TITLE, content=preamble))
        elif preamble:
            logger.debug(f"Discarding short preamble ({len(preamble)} chars)")

        for idx, heading in enumerate(headings):
            end = headings[idx + 1].start if idx + 1 < len(headings) else len(text)
            chunks.append(Chunk(
                id=f"chunk-article-{idx}",
                title=heading.title,
                # Heading stays in the content so the section reads standalone
                content=text[heading.start:end].strip()
            ))

        logger.info(
            f"Segmented document into {len(chunks)} sections",
            extra={"headings": len(headings), "chunks": len(chunks)}
        )
        return chunks

    def chunk_text(self, text: str) -> List[Chunk]:
        """
        Split text into overlapping fixed-size windows.

        A window is titled with its first line when that line looks like a
        caption (11 to 99 characters), otherwise with "Part {n}".

        Window size and overlap are the engine's fixed policy.

        Args:
            text: Text to split

        Returns:
            List of chunks, whitespace-only windows removed
        """
        if not text:
            return []

        chunk_size = self.chunk_size
        overlap = self.chunk_overlap
        step = chunk_size - overlap
        windows: List[Chunk] = []

        for start in range(0, len(text), step):
            content = text[start:start + chunk_size]
            first_line = content.split("\n", 1)[0].strip()
            if 10 < len(first_line) < 100:
                title = first_line
            else:
                title = f"Part {len(windows) + 1}"

            windows.append(Chunk(id=f"chunk-{start}", title=title, content=content))

        chunks = [chunk for chunk in windows if chunk.content.strip()]

        logger.info(
            f"Created {len(chunks)} fixed-size chunks",
            extra={"chunk_size": chunk_size, "overlap": overlap}
        )
        return chunks
