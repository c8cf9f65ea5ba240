from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..anki import CARD_TEMPLATES, MODEL_CSS, MODEL_NAME, NOTE_TAG, img_tag
from ..types import ImagePair
from ..utils import deck_tag, stable_int_id

logger = logging.getLogger(__name__)


@dataclass
class ApkgExportStats:
    decks: int = 0
    cards_exported: int = 0
    cards_skipped_duplicate: int = 0
    cards_skipped_missing_image: int = 0


def _model():
    import genanki  # type: ignore

    return genanki.Model(
        stable_int_id(f"notesankify:model:{MODEL_NAME}"),
        MODEL_NAME,
        fields=[{"name": "Front"}, {"name": "Back"}, {"name": "Hash"}],
        templates=[
            {
                "name": t["Name"],
                "qfmt": t["Front"],
                "afmt": t["Back"],
            }
            for t in CARD_TEMPLATES
        ],
        css=MODEL_CSS,
    )


def export_apkg(
    pairs_by_deck: Mapping[str, Sequence[ImagePair]],
    out_path: str | Path,
) -> ApkgExportStats:
    """Package image pairs as an Anki .apkg with embedded media.

    Rules:
    - One genanki deck per deck name, ids stable across runs
    - A hash already exported is skipped (same dedupe key as sync)
    - Missing image => skip the pair + warning; continue
    - If 0 cards exported => error
    """
    try:
        import genanki  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("genanki is required for apkg export. Install with: pip install genanki") from e

    out_path = Path(out_path)
    stats = ApkgExportStats()
    model = _model()

    decks = []
    media_files: list[str] = []
    seen_hashes: set[str] = set()

    for deck_name, pairs in pairs_by_deck.items():
        deck = genanki.Deck(stable_int_id(f"notesankify:deck:{deck_name}"), deck_name)
        for pair in pairs:
            if pair.hash in seen_hashes:
                stats.cards_skipped_duplicate += 1
                continue

            question, answer = Path(pair.question), Path(pair.answer)
            missing = [p for p in (question, answer) if not p.exists()]
            if missing:
                stats.cards_skipped_missing_image += 1
                logger.warning("missing image, skipping card: %s", missing[0])
                continue

            note = genanki.Note(
                model=model,
                fields=[img_tag(question.name), img_tag(answer.name), pair.hash],
                tags=[NOTE_TAG, deck_tag(deck_name)],
                guid=genanki.guid_for(pair.hash),
            )
            deck.add_note(note)
            media_files.extend([str(question), str(answer)])
            seen_hashes.add(pair.hash)
            stats.cards_exported += 1

        if deck.notes:
            decks.append(deck)

    stats.decks = len(decks)
    if stats.cards_exported <= 0:
        raise RuntimeError("No flashcards exported")

    out_path.parent.mkdir(parents=True, exist_ok=True)
    pkg = genanki.Package(decks)
    pkg.media_files = media_files
    pkg.write_to_file(str(out_path))
    return stats
