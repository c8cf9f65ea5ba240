"""Shared fixtures: synthetic PDFs and an in-memory AnkiConnect."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Callable

import fitz  # PyMuPDF
import pytest
import requests

from notesankify.anki import AnkiConnectClient, FlashcardSyncService
from notesankify.retry import no_wait_policy
from notesankify.types import GOODNOTES_STANDARD_FLASHCARD_HEIGHT, GOODNOTES_STANDARD_FLASHCARD_WIDTH

STD_W = GOODNOTES_STANDARD_FLASHCARD_WIDTH
STD_H = GOODNOTES_STANDARD_FLASHCARD_HEIGHT
A4_W, A4_H = 595.0, 842.0


def flashcard_text(n: int) -> str:
    return f"QUESTION {n}\nWhat is card {n}?\n\nANSWER {n}\nIt is card {n}."


def build_pdf(path: Path, pages: list[tuple[float, float, str]]) -> Path:
    """Write a PDF with one page per (width, height, text)."""
    doc = fitz.open()
    for width, height, text in pages:
        page = doc.new_page(width=width, height=height)
        if text:
            page.insert_text((36, 72), text, fontsize=14)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, pages: list[tuple[float, float, str]]) -> Path:
        return build_pdf(tmp_path / "pdfs" / name, pages)

    return _make


@pytest.fixture
def standard_flashcards_pdf(make_pdf) -> Path:
    """5 pages, all standard size with both markers."""
    return make_pdf("standard_flashcards.pdf", [(STD_W, STD_H, flashcard_text(i)) for i in range(1, 6)])


@pytest.fixture
def mixed_content_pdf(make_pdf) -> Path:
    """9 pages; flashcards at indices 1, 2, 4, 5, 7."""
    pages: list[tuple[float, float, str]] = []
    for i in range(9):
        if i in (1, 2, 4, 5, 7):
            pages.append((STD_W, STD_H, flashcard_text(i)))
        elif i % 2 == 0:
            pages.append((A4_W, A4_H, f"Lecture notes page {i}\nQUESTION and ANSWER discussed here"))
        else:
            pages.append((STD_W, STD_H, f"Plain notes page {i}\nno markers here"))
    return make_pdf("mixed_content.pdf", pages)


# ═══════════════════════════════════════════════════════════════════════════════
# FAKE ANKICONNECT
# ═══════════════════════════════════════════════════════════════════════════════


class FakeResponse:
    def __init__(self, body: Any = None, *, raw: str | None = None):
        self._body = body
        self._raw = raw

    def json(self) -> Any:
        if self._raw is not None:
            raise requests.JSONDecodeError("Expecting value", self._raw, 0)
        return self._body


class FakeAnkiConnect:
    """Stands in for requests.Session pointed at AnkiConnect.

    State: models, decks, notes, media. Failure injection:
    - ``down``: every request raises ConnectionError
    - ``fail_next[action] = n``: next n calls of action raise ConnectionError
    - ``error_next[action] = n``: next n calls return an error envelope
    """

    def __init__(self) -> None:
        self.models: list[str] = ["Basic"]
        self.decks: list[str] = ["Default"]
        self.notes: list[dict[str, Any]] = []
        self.media: dict[str, str] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.down = False
        self.fail_next: dict[str, int] = {}
        self.error_next: dict[str, int] = {}

    def actions(self) -> list[str]:
        return [a for a, _ in self.calls]

    def post(self, url: str, json: dict[str, Any] | None = None, timeout: Any = None) -> FakeResponse:
        payload = json or {}
        action = payload.get("action", "")
        params = payload.get("params") or {}
        self.calls.append((action, params))

        if self.down:
            raise requests.ConnectionError("connection refused")
        if self.fail_next.get(action, 0) > 0:
            self.fail_next[action] -= 1
            raise requests.ConnectionError("connection reset")
        if self.error_next.get(action, 0) > 0:
            self.error_next[action] -= 1
            return FakeResponse({"result": None, "error": f"{action} failed"})

        handler = getattr(self, f"_do_{action}", None)
        if handler is None:
            return FakeResponse({"result": None, "error": "unsupported action"})
        return FakeResponse({"result": handler(params), "error": None})

    def _do_version(self, params: dict[str, Any]) -> int:
        return 6

    def _do_modelNames(self, params: dict[str, Any]) -> list[str]:
        return list(self.models)

    def _do_createModel(self, params: dict[str, Any]) -> dict[str, Any]:
        self.models.append(params["modelName"])
        return {"name": params["modelName"]}

    def _do_createDeck(self, params: dict[str, Any]) -> int:
        if params["deck"] not in self.decks:
            self.decks.append(params["deck"])
        return self.decks.index(params["deck"]) + 1

    def _do_findNotes(self, params: dict[str, Any]) -> list[int]:
        m = re.fullmatch(r"Hash:(\S+)", params["query"])
        if not m:
            return []
        return [n["noteId"] for n in self.notes if n["fields"].get("Hash") == m.group(1)]

    def _do_notesInfo(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        wanted = set(params["notes"])
        return [
            {
                "noteId": n["noteId"],
                "modelName": n["modelName"],
                "tags": n["tags"],
                "fields": {k: {"value": v, "order": i} for i, (k, v) in enumerate(n["fields"].items())},
            }
            for n in self.notes
            if n["noteId"] in wanted
        ]

    def _do_storeMediaFile(self, params: dict[str, Any]) -> str:
        self.media[params["filename"]] = params["data"]
        return params["filename"]

    def _do_addNote(self, params: dict[str, Any]) -> int:
        note = dict(params["note"])
        note["noteId"] = 1000 + len(self.notes)
        self.notes.append(note)
        return note["noteId"]


@pytest.fixture
def fake_anki() -> FakeAnkiConnect:
    return FakeAnkiConnect()


@pytest.fixture
def sync_service(fake_anki: FakeAnkiConnect) -> FlashcardSyncService:
    client = AnkiConnectClient(session=fake_anki, retry=no_wait_policy())
    return FlashcardSyncService(client)
