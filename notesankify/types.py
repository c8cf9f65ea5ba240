from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Goodnotes "standard" flashcard template, in points.
GOODNOTES_STANDARD_FLASHCARD_WIDTH = 455.04
GOODNOTES_STANDARD_FLASHCARD_HEIGHT = 587.52


@dataclass(frozen=True)
class PageDimensions:
    width: float
    height: float


STANDARD_FLASHCARD_SIZE = PageDimensions(
    width=GOODNOTES_STANDARD_FLASHCARD_WIDTH,
    height=GOODNOTES_STANDARD_FLASHCARD_HEIGHT,
)


@dataclass(frozen=True)
class ProcessingOptions:
    check_dimensions: bool = True
    check_markers: bool = True


@dataclass(frozen=True)
class ImagePair:
    question: Path
    answer: Path
    hash: str  # sha256 hex of the full, unsplit page


@dataclass
class ProcessingStats:
    pdf_path: str
    flashcard_count: int = 0
    image_pairs: list[ImagePair] = field(default_factory=list)
    page_numbers: list[int] = field(default_factory=list)  # 1-based, parallel to image_pairs
    errors: list[str] = field(default_factory=list)

    def add(self, pair: ImagePair, page_index: int) -> None:
        self.image_pairs.append(pair)
        self.page_numbers.append(page_index + 1)
        self.flashcard_count += 1


@dataclass(frozen=True)
class PDFFile:
    absolute_path: Path
    relative_path: Path
