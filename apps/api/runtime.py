from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def load_environment() -> None:
    """Les .env fra prosjektroten. Variabler som allerede er satt, vinner."""
    load_dotenv(_project_root() / ".env")


__all__ = ["load_environment"]
