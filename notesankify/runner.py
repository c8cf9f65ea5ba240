from __future__ import annotations

import logging
from collections.abc import Iterable

from .anki import FlashcardSyncService
from .errors import NotesAnkifyError, ProcessingCancelled
from .processor import CancelToken, PDFProcessor
from .report import ProcessingReport
from .types import PDFFile
from .utils import deck_name_from_path


class BatchRunner:
    """Process a set of PDFs and sync what they produce, one at a time."""

    def __init__(
        self,
        processor: PDFProcessor,
        sync: FlashcardSyncService,
        *,
        logger: logging.Logger | None = None,
    ):
        self.processor = processor
        self.sync = sync
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        pdfs: Iterable[PDFFile],
        *,
        root_deck: str = "",
        report: ProcessingReport | None = None,
        cancel: CancelToken | None = None,
    ) -> ProcessingReport:
        """Run a batch and return its report.

        Raises:
            AnkiConnectionError: before any PDF is touched.
            ProcessingCancelled: ``cancel`` was set. Output written and notes
                synced so far are kept; the report is finished anyway.
        """
        report = report if report is not None else ProcessingReport()

        self.logger.debug("Checking Anki connection...")
        self.sync.check_connection()
        self.logger.info("Successfully connected to Anki")

        try:
            for pdf in pdfs:
                self._run_one(pdf, root_deck, report, cancel)
        finally:
            report.finish()
        return report

    def _run_one(
        self,
        pdf: PDFFile,
        root_deck: str,
        report: ProcessingReport,
        cancel: CancelToken | None,
    ) -> None:
        report.processed_pdfs += 1
        self.logger.info("Processing PDF (%d): %s", report.processed_pdfs, pdf.relative_path)

        try:
            stats = self.processor.process_pdf(pdf.absolute_path, cancel=cancel)
        except ProcessingCancelled:
            raise
        except Exception as e:
            self._fail(report, f"Error processing {pdf.relative_path}: {e}")
            return

        report.errors.extend(stats.errors)
        if stats.flashcard_count == 0:
            return

        deck_name = deck_name_from_path(root_deck, pdf.relative_path)
        report.total_flashcards += stats.flashcard_count

        try:
            self.sync.create_deck(deck_name)
        except NotesAnkifyError as e:
            self._fail(report, f"Error creating deck {deck_name}: {e}")
            return

        try:
            self.sync.add_all_flashcards(deck_name, stats.image_pairs, stats.page_numbers, report)
        except NotesAnkifyError as e:
            self._fail(report, f"Error adding flashcards to deck {deck_name}: {e}")

    def _fail(self, report: ProcessingReport, message: str) -> None:
        self.logger.warning(message)
        report.errors.append(message)
