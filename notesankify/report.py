from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .utils import write_json

COMPLETE_BANNER = """
+------------------------------------------------------------------------------+
|                           PROCESSING COMPLETE                                |
+------------------------------------------------------------------------------+"""

SKIPPED_BANNER = """
+------------------------------------------------------------------------------+
|                            SKIPPED CARDS                                     |
+------------------------------------------------------------------------------+"""


@dataclass(frozen=True)
class SkippedCardInfo:
    deck_name: str
    hash: str
    page_number: int


@dataclass
class ProcessingReport:
    """Counters for one batch run. Only ever incremented."""

    total_processed: int = 0
    added_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    skipped_cards: list[SkippedCardInfo] = field(default_factory=list)
    processed_pdfs: int = 0
    total_flashcards: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None

    def record_skipped(self, deck_name: str, content_hash: str, page_number: int) -> None:
        self.skipped_count += 1
        self.skipped_cards.append(SkippedCardInfo(deck_name=deck_name, hash=content_hash, page_number=page_number))

    def finish(self) -> None:
        self.end_time = datetime.now()

    def time_taken(self) -> timedelta:
        end = self.end_time or datetime.now()
        return end - self.start_time

    def summary_lines(self, *, output_dir: str | Path | None = None) -> list[str]:
        lines = [
            COMPLETE_BANNER,
            f"- Total PDFs processed: {self.processed_pdfs}",
            f"- Total flashcards found: {self.total_flashcards}",
            f"- Cards Added: {self.added_count}",
            f"- Cards Skipped: {self.skipped_count}",
            f"- Cards Failed: {self.failed_count}",
            f"- Time Taken: {self.time_taken()}",
        ]
        if output_dir is not None:
            lines.append(f"- Output directory: {output_dir}")
        if self.skipped_cards:
            lines.append(SKIPPED_BANNER)
            for card in self.skipped_cards:
                lines.append(f"- {card.deck_name} (Page {card.page_number}, Hash:{card.hash})")
        return lines

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["start_time"] = self.start_time.isoformat(timespec="seconds")
        out["end_time"] = self.end_time.isoformat(timespec="seconds") if self.end_time else None
        out["time_taken_seconds"] = round(self.time_taken().total_seconds(), 3)
        return out


def write_report(path: str | Path, report: ProcessingReport) -> None:
    write_json(path, report.to_dict())
