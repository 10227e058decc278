"""Document data models."""
from dataclasses import dataclass


@dataclass
class Page:
    """Text extracted from one PDF page, numbered from 1."""
    page_number: int
    text: str
    word_count: int

    @property
    def is_blank(self) -> bool:
        # Scanned pages without a text layer come back empty
        return self.word_count == 0
