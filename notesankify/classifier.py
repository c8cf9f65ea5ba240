"""Decide whether a PDF page is a flashcard page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .errors import PageRetrievalError
from .types import PageDimensions, ProcessingOptions

# Absorbs rounding noise from the renderer; not a user setting.
DIMENSION_TOLERANCE = 1.0

QUESTION_MARKER = "QUESTION"
ANSWER_MARKER = "ANSWER"


class ClassifiablePage(Protocol):
    index: int

    def bounds(self) -> tuple[float, float]: ...

    def text(self) -> str: ...


def matches_dimensions(width: float, height: float, target: PageDimensions) -> bool:
    """True if (width, height) equals target, either upright or rotated 90 degrees."""
    t = DIMENSION_TOLERANCE
    upright = abs(width - target.width) <= t and abs(height - target.height) <= t
    rotated = abs(width - target.height) <= t and abs(height - target.width) <= t
    return upright or rotated


def contains_markers(page_text: str) -> bool:
    # Case-sensitive on purpose: "Question" in body text must not count.
    return QUESTION_MARKER in page_text and ANSWER_MARKER in page_text


@dataclass
class PageClassifier:
    dimensions: PageDimensions
    options: ProcessingOptions
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def should_process(self, page: ClassifiablePage) -> bool:
        """Apply the enabled checks, dimensions first.

        Raises:
            PageRetrievalError: bounds or text could not be read. The page
                is not a flashcard in that case, but the caller gets to
                report why.
        """
        if self.options.check_dimensions:
            try:
                width, height = page.bounds()
            except PageRetrievalError:
                raise
            except Exception as e:
                raise PageRetrievalError(page.index, "bounds", e) from e

            if not matches_dimensions(width, height, self.dimensions):
                self.logger.debug(
                    "page %d: %.2f x %.2f does not match %.2f x %.2f",
                    page.index + 1,
                    width,
                    height,
                    self.dimensions.width,
                    self.dimensions.height,
                )
                return False

        if self.options.check_markers:
            try:
                text = page.text()
            except PageRetrievalError:
                raise
            except Exception as e:
                raise PageRetrievalError(page.index, "text", e) from e

            if not contains_markers(text):
                self.logger.debug("page %d: QUESTION/ANSWER markers not found", page.index + 1)
                return False

        return True
