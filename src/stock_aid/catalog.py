"""
Static item name / search token table.

Each line of the data file is ``<item name>:<token>,<token>,...``. File
order is kept so clients can show items in a stable order.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import ReferenceDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemTokens:
    """An item name and the tokens that identify it in free text."""

    name: str
    tokens: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "tokens": list(self.tokens)}


class ItemTokenTable:
    """Immutable, ordered list of ItemTokens."""

    def __init__(self, entries):
        self._entries = tuple(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @classmethod
    def from_lines(cls, lines) -> "ItemTokenTable":
        entries = []
        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            name, sep, tokens = line.partition(":")
            if not sep or not name.strip():
                logger.debug(f"Skipping malformed item token line {lineno}")
                continue
            entries.append(
                ItemTokens(
                    name=name.strip(),
                    tokens=tuple(t.strip() for t in tokens.split(",") if t.strip()),
                )
            )
        return cls(entries)

    @classmethod
    def load(cls, path: Path) -> "ItemTokenTable":
        try:
            with open(path, encoding="utf-8") as f:
                table = cls.from_lines(f)
        except OSError as e:
            raise ReferenceDataError(f"failed to open items data file {path}: {e}") from e

        logger.info(f"Parsed {len(table)} item token entries from {path}")
        return table
