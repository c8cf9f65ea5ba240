"""Batch runs: connection gate, deck naming, error isolation, cancellation."""
from __future__ import annotations

import threading
from pathlib import Path

import pytest

from notesankify.errors import AnkiConnectionError, ProcessingCancelled
from notesankify.processor import FlashcardProcessor, PDFProcessor
from notesankify.report import ProcessingReport
from notesankify.runner import BatchRunner
from notesankify.scanner import find_pdfs
from notesankify.types import ImagePair, PDFFile, ProcessingStats

from conftest import STD_H, STD_W, build_pdf, flashcard_text


class StubProcessor(PDFProcessor):
    """Returns canned stats per PDF name; raises for names in ``broken``."""

    def __init__(self, tmp_path: Path, pages_by_pdf: dict[str, list[int]], broken: set[str] = frozenset()):
        self.tmp_path = tmp_path
        self.pages_by_pdf = pages_by_pdf
        self.broken = broken
        self.processed: list[str] = []
        self.cleaned = False

    def process_pdf(self, pdf_path, cancel=None) -> ProcessingStats:
        pdf_path = Path(pdf_path)
        if cancel is not None and cancel.is_set():
            raise ProcessingCancelled("cancelled")
        self.processed.append(pdf_path.name)
        if pdf_path.name in self.broken:
            raise RuntimeError("failed to open PDF")

        stats = ProcessingStats(pdf_path=str(pdf_path))
        for page_index in self.pages_by_pdf.get(pdf_path.name, []):
            content_hash = f"{pdf_path.stem}-{page_index}".ljust(64, "0")
            q = self.tmp_path / f"{pdf_path.stem}_{page_index}_question.png"
            a = self.tmp_path / f"{pdf_path.stem}_{page_index}_answer.png"
            q.write_bytes(b"q")
            a.write_bytes(b"a")
            stats.add(ImagePair(question=q, answer=a, hash=content_hash), page_index)
        return stats

    def cleanup(self) -> None:
        self.cleaned = True


def _pdf(rel: str) -> PDFFile:
    return PDFFile(absolute_path=Path("/notes") / rel, relative_path=Path(rel))


class TestBatchRunner:
    def test_connection_checked_before_processing(self, tmp_path, sync_service, fake_anki):
        fake_anki.down = True
        processor = StubProcessor(tmp_path, {"a.pdf": [0]})
        with pytest.raises(AnkiConnectionError):
            BatchRunner(processor, sync_service).run([_pdf("a.pdf")])
        assert processor.processed == []

    def test_decks_and_counts(self, tmp_path, sync_service, fake_anki):
        processor = StubProcessor(tmp_path, {"cells.pdf": [0, 2], "empty.pdf": [], "intro.pdf": [4]})
        pdfs = [_pdf("bio/cells.pdf"), _pdf("bio/empty.pdf"), _pdf("intro.pdf")]

        report = BatchRunner(processor, sync_service).run(pdfs, root_deck="Notes")

        assert report.processed_pdfs == 3
        assert report.total_flashcards == 3
        assert report.added_count == 3
        assert report.total_processed == 3
        assert report.end_time is not None
        assert "Notes::bio::cells" in fake_anki.decks
        assert "Notes::intro" in fake_anki.decks
        assert "Notes::bio::empty" not in fake_anki.decks
        decks = sorted({n["deckName"] for n in fake_anki.notes})
        assert decks == ["Notes::bio::cells", "Notes::intro"]

    def test_second_run_skips_duplicates(self, tmp_path, sync_service, fake_anki):
        processor = StubProcessor(tmp_path, {"a.pdf": [0, 1]})
        runner = BatchRunner(processor, sync_service)
        runner.run([_pdf("a.pdf")])

        report = runner.run([_pdf("a.pdf")])
        assert report.added_count == 0
        assert report.skipped_count == 2
        assert [c.page_number for c in report.skipped_cards] == [1, 2]
        assert len(fake_anki.notes) == 2

    def test_broken_pdf_does_not_stop_batch(self, tmp_path, sync_service):
        processor = StubProcessor(tmp_path, {"b.pdf": [0]}, broken={"a.pdf"})
        report = BatchRunner(processor, sync_service).run([_pdf("a.pdf"), _pdf("b.pdf")])

        assert processor.processed == ["a.pdf", "b.pdf"]
        assert report.processed_pdfs == 2
        assert report.added_count == 1
        assert any("Error processing a.pdf" in e for e in report.errors)

    def test_deck_creation_failure_skips_pdf(self, tmp_path, sync_service, fake_anki):
        fake_anki.error_next["createDeck"] = 3
        processor = StubProcessor(tmp_path, {"a.pdf": [0], "b.pdf": [0]})
        report = BatchRunner(processor, sync_service).run([_pdf("a.pdf"), _pdf("b.pdf")])

        assert report.total_flashcards == 2
        assert report.added_count == 1
        assert [n["deckName"] for n in fake_anki.notes] == ["b"]
        assert any("Error creating deck a" in e for e in report.errors)

    def test_malformed_lookup_reply_does_not_stop_batch(self, tmp_path, sync_service, fake_anki, monkeypatch):
        processor = StubProcessor(tmp_path, {"a.pdf": [0], "b.pdf": [0]})
        runner = BatchRunner(processor, sync_service)
        runner.run([_pdf("a.pdf")])
        monkeypatch.setattr(fake_anki, "_do_notesInfo", lambda params: [{"noteId": 1, "fields": ["Hash"]}])

        report = runner.run([_pdf("a.pdf"), _pdf("b.pdf")])
        assert report.processed_pdfs == 2
        assert report.failed_count == 1
        assert report.added_count == 1
        assert [n["deckName"] for n in fake_anki.notes] == ["a", "b"]

    def test_cancellation_propagates(self, tmp_path, sync_service):
        cancel = threading.Event()
        cancel.set()
        report = ProcessingReport()
        processor = StubProcessor(tmp_path, {"a.pdf": [0]})
        with pytest.raises(ProcessingCancelled):
            BatchRunner(processor, sync_service).run([_pdf("a.pdf")], report=report, cancel=cancel)
        assert report.end_time is not None
        assert report.added_count == 0


class TestEndToEnd:
    def test_pdf_tree_to_anki(self, tmp_path, sync_service, fake_anki):
        root = tmp_path / "notes"
        build_pdf(root / "bio" / "cells.pdf", [(STD_W, STD_H, flashcard_text(i)) for i in range(3)])
        build_pdf(root / "misc.pdf", [(STD_W, STD_H, "just notes"), (STD_W, STD_H, flashcard_text(9))])

        processor = FlashcardProcessor(temp_dir=tmp_path / "temp", output_dir=tmp_path / "out", dpi=36)
        runner = BatchRunner(processor, sync_service)

        report = runner.run(find_pdfs(root), root_deck="Study")
        assert report.processed_pdfs == 2
        assert report.total_flashcards == 4
        assert report.added_count == 4
        assert {n["deckName"] for n in fake_anki.notes} == {"Study::bio::cells", "Study::misc"}

        again = runner.run(find_pdfs(root), root_deck="Study")
        assert again.added_count == 0
        assert again.skipped_count == 4
        # misc.pdf sorts before the bio/ subdirectory
        assert [c.page_number for c in again.skipped_cards] == [2, 1, 2, 3]
        assert len(fake_anki.notes) == 4
