"""Entry point for running notesankify as a module.

Usage:
    python -m notesankify <command> [options]
"""
from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
