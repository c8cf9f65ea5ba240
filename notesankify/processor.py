from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Protocol

from PIL import Image

from .classifier import PageClassifier
from .config import DEFAULT_DPI
from .errors import PageRetrievalError, ProcessingCancelled
from .hasher import image_hash, short_hash
from .page_provider import open_pdf
from .splitter import ImageSplitter
from .types import STANDARD_FLASHCARD_SIZE, PageDimensions, ProcessingOptions, ProcessingStats
from .utils import ensure_dir


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


class PDFProcessor(ABC):
    """What batch runners and front ends need from a processor."""

    @abstractmethod
    def process_pdf(self, pdf_path: str | Path, cancel: CancelToken | None = None) -> ProcessingStats:
        """Extract every flashcard page of one PDF as an image pair."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release temporary resources."""


def _check_cancel(cancel: CancelToken | None, pdf_path: Path) -> None:
    if cancel is not None and cancel.is_set():
        raise ProcessingCancelled(f"processing cancelled: {pdf_path}")


class FlashcardProcessor(PDFProcessor):
    def __init__(
        self,
        *,
        temp_dir: str | Path,
        output_dir: str | Path,
        dimensions: PageDimensions = STANDARD_FLASHCARD_SIZE,
        options: ProcessingOptions = ProcessingOptions(),
        dpi: int = DEFAULT_DPI,
        logger: logging.Logger | None = None,
    ):
        self.temp_dir = Path(temp_dir)
        self.output_dir = Path(output_dir)
        self.dpi = int(dpi)
        self.logger = logger or logging.getLogger(__name__)

        ensure_dir(self.temp_dir)
        self.classifier = PageClassifier(dimensions=dimensions, options=options, logger=self.logger)
        self.splitter = ImageSplitter(output_dir=self.output_dir, logger=self.logger)

    def process_pdf(self, pdf_path: str | Path, cancel: CancelToken | None = None) -> ProcessingStats:
        """Classify, render, hash and split every page of ``pdf_path``.

        Per-page failures are logged, recorded in ``stats.errors`` and the
        page is skipped. Failing to open the PDF raises.

        Raises:
            ProcessingCancelled: ``cancel`` was set; checked once per page.
                Files already written stay on disk.
        """
        pdf_path = Path(pdf_path)
        stats = ProcessingStats(pdf_path=str(pdf_path))
        base_name = pdf_path.stem

        _check_cancel(cancel, pdf_path)
        with open_pdf(pdf_path) as doc:
            self.logger.debug("processing %s (%d pages)", pdf_path, doc.page_count)
            for page in doc.iter_pages():
                _check_cancel(cancel, pdf_path)
                page_num = page.index + 1

                try:
                    if not self.classifier.should_process(page):
                        continue
                except PageRetrievalError as e:
                    self._record_error(stats, f"{pdf_path.name}: {e}")
                    continue

                try:
                    image = page.render(self.dpi)
                    content_hash = image_hash(image, log=self.logger)
                    page_path = self._save_page(image, base_name, content_hash)
                    pair = self.splitter.split(page_path, base_name, content_hash)
                except Exception as e:
                    self._record_error(stats, f"{pdf_path.name}: page {page_num}: {e}")
                    continue

                stats.add(pair, page.index)
                self.logger.debug("page %d -> %s", page_num, pair.question.name)

        if stats.flashcard_count:
            self.logger.info("Found %d flashcards in %s", stats.flashcard_count, pdf_path.name)
        return stats

    def _save_page(self, image: Image.Image, base_name: str, content_hash: str) -> Path:
        path = self.temp_dir / f"{base_name}_{short_hash(content_hash)}.png"
        image.save(path, format="PNG")
        return path

    def _record_error(self, stats: ProcessingStats, message: str) -> None:
        self.logger.warning(message)
        stats.errors.append(message)

    def cleanup(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)
