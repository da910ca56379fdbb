"""Document data models."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Page:
    """Represents a single page of extracted text (1-indexed)."""
    page_number: int
    text: str
