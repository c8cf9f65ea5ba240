from __future__ import annotations

import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from .types import STANDARD_FLASHCARD_SIZE, PageDimensions, ProcessingOptions
from .utils import load_json

DEFAULT_ANKI_CONNECT_URL = "http://localhost:8765"
DEFAULT_ROOT_DECK = "NotesAnkify"
DEFAULT_DPI = 200


def default_output_dir() -> Path:
    return Path(tempfile.gettempdir()) / "notesankify-output"


def default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "notesankify-temp"


@dataclass(frozen=True)
class NotesAnkifyConfig:
    pdf_source_dir: Path | None = None
    root_deck_name: str = DEFAULT_ROOT_DECK
    output_dir: Path = default_output_dir()
    temp_dir: Path = default_temp_dir()
    anki_connect_url: str = DEFAULT_ANKI_CONNECT_URL
    dpi: int = DEFAULT_DPI
    flashcard_size: PageDimensions = STANDARD_FLASHCARD_SIZE
    check_dimensions: bool = True
    check_markers: bool = True

    @property
    def options(self) -> ProcessingOptions:
        return ProcessingOptions(check_dimensions=self.check_dimensions, check_markers=self.check_markers)

    def with_overrides(self, **overrides: Any) -> "NotesAnkifyConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def config_from_dict(data: dict[str, Any]) -> NotesAnkifyConfig:
    base = NotesAnkifyConfig()
    size = data.get("flashcard_size") or {}
    src = data.get("pdf_source_dir")
    return NotesAnkifyConfig(
        pdf_source_dir=Path(src) if src else None,
        root_deck_name=str(data.get("root_deck_name", base.root_deck_name)),
        output_dir=Path(data.get("output_dir") or base.output_dir),
        temp_dir=Path(data.get("temp_dir") or base.temp_dir),
        anki_connect_url=str(data.get("anki_connect_url") or base.anki_connect_url),
        dpi=int(data.get("dpi", base.dpi)),
        flashcard_size=PageDimensions(
            width=float(size.get("width", base.flashcard_size.width)),
            height=float(size.get("height", base.flashcard_size.height)),
        ),
        check_dimensions=bool(data.get("check_dimensions", base.check_dimensions)),
        check_markers=bool(data.get("check_markers", base.check_markers)),
    )


def load_config(config_path: str | Path | None) -> NotesAnkifyConfig:
    if config_path is None:
        return NotesAnkifyConfig()
    data = load_json(config_path)
    if not isinstance(data, dict):
        raise ValueError(f"config must be a JSON object: {config_path}")
    return config_from_dict(data)
