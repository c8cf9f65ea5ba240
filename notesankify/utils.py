from __future__ import annotations

import hashlib
import json
from pathlib import Path, PurePath
from typing import Any

DECK_SEPARATOR = "::"


def ensure_dir(path: str | Path) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def write_json(path: str | Path, data: Any) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def deck_name_from_path(root_prefix: str, relative_path: str | PurePath) -> str:
    """Build an Anki deck path mirroring the source tree.

    deck_name_from_path("Notes", "bio/cells/mitosis.pdf") -> "Notes::bio::cells::mitosis"
    """
    rel = PurePath(relative_path)
    parts: list[str] = []
    if root_prefix:
        parts.append(root_prefix)
    parts.extend(p for p in rel.parent.parts if p not in (".", ""))
    parts.append(rel.stem)
    return DECK_SEPARATOR.join(parts)


def deck_tag(deck_name: str) -> str:
    # Anki tags are space separated.
    return deck_name.strip().replace(" ", "_")


def stable_int_id(s: str) -> int:
    # genanki ids must be int; keep stable across runs.
    digest = hashlib.sha1(s.encode("utf-8")).digest()
    n = int.from_bytes(digest[:8], "big", signed=False)
    return n % (2**31 - 1)
