"""Heading detection strategies used by the chunking engine."""
import re
from dataclasses import dataclass
from typing import List, Pattern


@dataclass(frozen=True)
class HeadingMatch:
    """A detected section heading."""
    start: int  # offset of the heading in the source text
    title: str  # full heading line, trimmed


class HeadingMatcher:
    """
    Finds section boundaries in extracted document text.

    Subclasses only need to provide a compiled ``pattern`` whose matches start
    at a section boundary and cover the heading line. Override ``find`` for
    conventions a single regular expression can't express.
    """

    pattern: Pattern[str]

    def find(self, text: str) -> List[HeadingMatch]:
        """
        Return the headings found in ``text``, in text order.

        Args:
            text: Full document text

        Returns:
            List of HeadingMatch, empty if the document has no recognised structure
        """
        return [
            HeadingMatch(start=match.start(), title=match.group(0).strip())
            for match in self.pattern.finditer(text)
        ]


class ArticleHeadingMatcher(HeadingMatcher):
    """
    Matches Portuguese legal-article headings at the start of a line.

    Recognised forms include "Artigo 1.º Definições", "Art. 2.º", "Art 7º"
    and inserted articles such as "Artigo 3-A." The match runs to the end of
    the heading line so the title carries the article's caption.
    """

    pattern = re.compile(
        r"^(Art(?:igo)?\.?\s+\d+º?(?:-?[A-Z\d]+)?\.?.*)",
        re.MULTILINE,
    )
