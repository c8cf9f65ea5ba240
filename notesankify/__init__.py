"""Turn study-note PDF flashcard pages into Anki notes.

The package focuses on:
- deciding which PDF pages are flashcards (size and QUESTION/ANSWER markers)
- rendering, hashing and splitting them into question/answer images
- syncing the image pairs to Anki through AnkiConnect, idempotently

Directory walking, the command line and offline .apkg export are thin
layers around that core.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
