from __future__ import annotations

import argparse
import logging
import signal
import threading
from collections import defaultdict
from pathlib import Path

from .anki import AnkiConnectClient, FlashcardSyncService
from .classifier import matches_dimensions
from .config import NotesAnkifyConfig, load_config
from .errors import AnkiConnectionError, ProcessingCancelled
from .exporters.apkg import export_apkg
from .log import build_logger
from .page_provider import open_pdf
from .processor import FlashcardProcessor
from .report import ProcessingReport, write_report
from .runner import BatchRunner
from .scanner import find_pdfs
from .types import ImagePair, PageDimensions
from .utils import deck_name_from_path

EXIT_CANCELLED = 130


def _add_processing_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, help="JSON config path (optional)")
    p.add_argument("--pdf-dir", default=None, help="Directory containing PDF files (overrides config)")
    p.add_argument("--output-dir", default=None, help="Directory to save question/answer images")
    p.add_argument("--root-deck", default=None, help="Root deck name for organizing flashcards")
    p.add_argument("--width", type=float, default=0.0, help="Custom flashcard width in points")
    p.add_argument("--height", type=float, default=0.0, help="Custom flashcard height in points")
    p.add_argument("--no-markers", action="store_true", help="Do not require QUESTION/ANSWER markers")
    p.add_argument("--no-dimensions", action="store_true", help="Do not check page dimensions")
    p.add_argument("--dpi", type=int, default=None, help="DPI for page rendering")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="notesankify")
    sub = p.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Extract flashcards from PDFs and add them to Anki")
    _add_processing_args(sync)
    sync.add_argument("--anki-url", default=None, help="AnkiConnect URL")
    sync.add_argument("--report-json", default=None, help="Write the processing report to this file")

    extract = sub.add_parser("extract", help="Extract flashcard images without talking to Anki")
    _add_processing_args(extract)
    extract.add_argument("--apkg", default=None, help="Also package the flashcards as an .apkg file")

    dims = sub.add_parser("dims", help="Print page dimensions of a PDF")
    dims.add_argument("--file", required=True, help="PDF file")
    dims.add_argument("--width", type=float, default=0.0)
    dims.add_argument("--height", type=float, default=0.0)

    return p


def _dimensions(args: argparse.Namespace) -> PageDimensions | None:
    if args.width > 0 and args.height > 0:
        return PageDimensions(width=args.width, height=args.height)
    return None


def resolve_config(args: argparse.Namespace) -> NotesAnkifyConfig:
    cfg = load_config(args.config)
    return cfg.with_overrides(
        pdf_source_dir=Path(args.pdf_dir) if args.pdf_dir else None,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        root_deck_name=args.root_deck,
        dpi=args.dpi,
        anki_connect_url=getattr(args, "anki_url", None),
        flashcard_size=_dimensions(args),
        check_markers=False if args.no_markers else None,
        check_dimensions=False if args.no_dimensions else None,
    )


def _install_cancel_handler(cancel: threading.Event, logger: logging.Logger) -> object:
    # First Ctrl+C stops at the next page; a second one interrupts right away.
    def handler(signum: int, frame: object) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.warning("Received interrupt, stopping after the current page...")
        cancel.set()

    if threading.current_thread() is not threading.main_thread():
        return None
    return signal.signal(signal.SIGINT, handler)


def _make_processor(cfg: NotesAnkifyConfig, logger: logging.Logger) -> FlashcardProcessor:
    return FlashcardProcessor(
        temp_dir=cfg.temp_dir,
        output_dir=cfg.output_dir,
        dimensions=cfg.flashcard_size,
        options=cfg.options,
        dpi=cfg.dpi,
        logger=logger,
    )


def cmd_sync(args: argparse.Namespace) -> int:
    logger = build_logger(level=logging.DEBUG if args.verbose else None)
    cfg = resolve_config(args)
    if cfg.pdf_source_dir is None:
        logger.error("No PDF directory given (use --pdf-dir or pdf_source_dir in the config)")
        return 1

    try:
        pdfs = find_pdfs(cfg.pdf_source_dir, logger=logger)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    logger.info("Found %d PDFs to process", len(pdfs))

    client = AnkiConnectClient(cfg.anki_connect_url, logger=logger)
    runner = BatchRunner(_make_processor(cfg, logger), FlashcardSyncService(client, logger=logger), logger=logger)

    cancel = threading.Event()
    previous_handler = _install_cancel_handler(cancel, logger)

    report = ProcessingReport()
    code = 0
    try:
        runner.run(pdfs, root_deck=cfg.root_deck_name, report=report, cancel=cancel)
    except AnkiConnectionError as e:
        logger.error("Anki connection error: %s", e)
        return 1
    except ProcessingCancelled as e:
        logger.warning("%s", e)
        code = EXIT_CANCELLED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        report.finish()
        code = EXIT_CANCELLED
    finally:
        runner.processor.cleanup()
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    for line in report.summary_lines(output_dir=cfg.output_dir):
        logger.info(line)
    if args.report_json:
        write_report(args.report_json, report)
    return code


def cmd_extract(args: argparse.Namespace) -> int:
    logger = build_logger(level=logging.DEBUG if args.verbose else None)
    cfg = resolve_config(args)
    if cfg.pdf_source_dir is None:
        logger.error("No PDF directory given (use --pdf-dir or pdf_source_dir in the config)")
        return 1

    try:
        pdfs = find_pdfs(cfg.pdf_source_dir, logger=logger)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1

    processor = _make_processor(cfg, logger)
    pairs_by_deck: dict[str, list[ImagePair]] = defaultdict(list)
    total = 0
    try:
        for pdf in pdfs:
            try:
                stats = processor.process_pdf(pdf.absolute_path)
            except Exception as e:
                logger.warning("Error processing %s: %s", pdf.relative_path, e)
                continue
            total += stats.flashcard_count
            if stats.image_pairs:
                pairs_by_deck[deck_name_from_path(cfg.root_deck_name, pdf.relative_path)].extend(stats.image_pairs)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_CANCELLED
    finally:
        processor.cleanup()

    logger.info("Extracted %d flashcards from %d PDFs into %s", total, len(pdfs), cfg.output_dir)

    if args.apkg:
        try:
            export = export_apkg(pairs_by_deck, args.apkg)
        except Exception as e:
            logger.error("apkg export failed: %s", e)
            return 1
        logger.info("Wrote %d cards in %d decks to %s", export.cards_exported, export.decks, args.apkg)
    return 0


def cmd_dims(args: argparse.Namespace) -> int:
    target = _dimensions(args) or NotesAnkifyConfig().flashcard_size
    print(f"Analyzing PDF: {args.file}")
    try:
        with open_pdf(args.file) as doc:
            for page in doc.iter_pages():
                width, height = page.bounds()
                match = "yes" if matches_dimensions(width, height, target) else "no"
                print(f"Page {page.index + 1}: {width:.3f} x {height:.3f} points (flashcard size: {match})")
    except Exception as e:
        print(f"Error getting page dimensions: {e}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "sync":
        return cmd_sync(args)

    if args.command == "extract":
        return cmd_extract(args)

    if args.command == "dims":
        return cmd_dims(args)

    raise SystemExit(2)


if __name__ == "__main__":
    raise SystemExit(main())
