"""Sync image pairs to Anki through the AnkiConnect add-on."""

from __future__ import annotations

import base64
import html
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import requests

from .config import DEFAULT_ANKI_CONNECT_URL
from .errors import AnkiConnectionError, AnkiResponseError, NotesAnkifyError, SyncError
from .report import ProcessingReport
from .retry import RetryPolicy
from .types import ImagePair
from .utils import deck_tag

ANKI_CONNECT_VERSION = 6
MODEL_NAME = "NotesAnkify"
MODEL_FIELDS = ["Front", "Back", "Hash"]
NOTE_TAG = "notesankify"

MODEL_CSS = """.card {
    font-family: arial;
    font-size: 20px;
    text-align: center;
    color: black;
    background-color: white;
}
.hash { display: none; }"""

# Hash is rendered but hidden so it stays searchable as a field.
CARD_TEMPLATES = [
    {
        "Name": "Card 1",
        "Front": '{{Front}}\n<div class="hash">{{Hash}}</div>',
        "Back": '{{FrontSide}}\n<hr id="answer">\n{{Back}}',
    }
]

CONNECTION_HELP = (
    "could not connect to Anki. Please ensure:\n"
    "1. Anki is running https://apps.ankiweb.net/#download\n"
    "2. AnkiConnect add-on is installed (code: 2055492159) https://ankiweb.net/shared/info/2055492159\n"
    "3. Anki has been restarted after installing AnkiConnect"
)


def img_tag(filename: str) -> str:
    return f'<img src="{html.escape(filename)}">'


class AnkiConnectClient:
    """Request/response envelope handling plus retries.

    Every call goes through the retry policy; a non-null ``error`` in the
    response counts as a failure whatever the HTTP status was.
    """

    def __init__(
        self,
        url: str = DEFAULT_ANKI_CONNECT_URL,
        *,
        session: Any | None = None,
        retry: RetryPolicy | None = None,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        self.url = url
        self.session = session if session is not None else requests.Session()
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def _post_once(self, action: str, params: dict[str, Any]) -> Any:
        payload = {"action": action, "version": ANKI_CONNECT_VERSION, "params": params}
        resp = self.session.post(self.url, json=payload, timeout=self.timeout)
        body = resp.json()
        if not isinstance(body, dict) or "result" not in body or "error" not in body:
            raise AnkiResponseError(f"{action}: malformed response: {body!r}")
        if body["error"] is not None:
            raise AnkiResponseError(f"anki error: {body['error']}")
        return body["result"]

    def invoke(self, action: str, **params: Any) -> Any:
        self.logger.debug("anki request: %s", action)
        return self.retry.call(self._post_once, action, params, operation_name=action)


class FlashcardSyncService:
    def __init__(self, client: AnkiConnectClient, *, logger: logging.Logger | None = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def check_connection(self) -> None:
        """Raises AnkiConnectionError if AnkiConnect is not answering."""
        try:
            version = self.client.invoke("version")
        except (SyncError, AnkiResponseError) as e:
            self.logger.info("Error sending request to Anki: %s", e)
            raise AnkiConnectionError(CONNECTION_HELP) from e
        self.logger.debug("AnkiConnect version %s", version)

    def ensure_model_exists(self) -> None:
        names = self.client.invoke("modelNames")
        if not isinstance(names, list):
            raise SyncError(f"failed to parse model names: {names!r}")
        if MODEL_NAME in names:
            self.logger.debug("%s model already exists", MODEL_NAME)
            return

        self.client.invoke(
            "createModel",
            modelName=MODEL_NAME,
            inOrderFields=MODEL_FIELDS,
            css=MODEL_CSS,
            cardTemplates=CARD_TEMPLATES,
        )
        self.logger.info("Created %s model", MODEL_NAME)

    def create_deck(self, name: str) -> None:
        self.logger.info("Creating deck: %s", name)
        self.client.invoke("createDeck", deck=name)

    def find_note_by_hash(self, content_hash: str) -> int | None:
        """Id of a note whose Hash field equals ``content_hash``, if any."""
        note_ids = self.client.invoke("findNotes", query=f"Hash:{content_hash}")
        if not isinstance(note_ids, list):
            raise SyncError(f"failed to parse note ids: {note_ids!r}")
        if not note_ids:
            return None

        infos = self.client.invoke("notesInfo", notes=note_ids)
        if not isinstance(infos, list):
            raise AnkiResponseError(f"failed to parse notes info: {infos!r}")
        for info in infos:
            if not isinstance(info, dict):
                raise AnkiResponseError(f"malformed note info: {info!r}")
            fields = info.get("fields")
            hash_field = fields.get("Hash") if isinstance(fields, dict) else None
            note_id = info.get("noteId")
            if not isinstance(hash_field, dict) or not isinstance(note_id, int):
                raise AnkiResponseError(f"malformed note info: {info!r}")
            if hash_field.get("value") == content_hash:
                return note_id
        return None

    def _store_media(self, path: Path) -> str:
        data = base64.b64encode(path.read_bytes()).decode("ascii")
        self.client.invoke("storeMediaFile", filename=path.name, data=data)
        return path.name

    def add_flashcard(self, deck_name: str, pair: ImagePair, page_number: int, report: ProcessingReport) -> None:
        """Make ``pair`` exist exactly once in Anki.

        A duplicate (a note already carrying the same Hash) is a success
        and is counted as skipped. Anything else that goes wrong raises
        and counts toward neither added nor skipped.
        """
        report.total_processed += 1
        self.logger.debug("processing flashcard for deck %s: %s", deck_name, pair.question)

        existing = self.find_note_by_hash(pair.hash)
        if existing is not None:
            self.logger.info("Skipping duplicate flashcard with hash: %s", pair.hash)
            report.record_skipped(deck_name, pair.hash, page_number)
            return

        try:
            question_name = self._store_media(Path(pair.question))
            answer_name = self._store_media(Path(pair.answer))
        except OSError as e:
            raise SyncError(f"failed to read image: {e}") from e

        note = {
            "deckName": deck_name,
            "modelName": MODEL_NAME,
            "fields": {
                "Front": img_tag(question_name),
                "Back": img_tag(answer_name),
                "Hash": pair.hash,
            },
            "options": {"allowDuplicate": False},
            "tags": [NOTE_TAG, deck_tag(deck_name)],
        }
        self.client.invoke("addNote", note=note)
        report.added_count += 1
        self.logger.debug("added flashcard with hash: %s", pair.hash)

    def add_all_flashcards(
        self,
        deck_name: str,
        pairs: Sequence[ImagePair],
        page_numbers: Sequence[int],
        report: ProcessingReport,
    ) -> None:
        """Sync every pair; raise once at the end if any of them failed."""
        if len(pairs) != len(page_numbers):
            raise ValueError("pairs and page_numbers must have the same length")

        self.ensure_model_exists()

        failed = 0
        for pair, page_number in zip(pairs, page_numbers):
            try:
                self.add_flashcard(deck_name, pair, page_number, report)
            except NotesAnkifyError as e:
                failed += 1
                report.failed_count += 1
                message = f"{deck_name} (Page {page_number}): {e}"
                report.errors.append(message)
                self.logger.warning("Error adding flashcard: %s", message)

        if failed:
            raise SyncError(f"failed to add {failed} out of {len(pairs)} flashcards")
        self.logger.debug("Successfully synced %d flashcards to %s", len(pairs), deck_name)
