"""Session-scoped variable bindings."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import NamedTuple

from .logging_config import get_logger

logger = get_logger("symbols")


class SymbolType(Enum):
    NUMBER = "Number"
    EXPRESSION = "Expression"
    UNDEFINED = "Undefined"


class SymbolEntry(NamedTuple):
    name: str
    value: float
    type: SymbolType

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "value": self.value, "type": self.type.value}


class SymbolTable(Mapping):
    """Ordered name -> (value, type) store.

    The table reads as a ``Mapping[str, float]`` so it can be handed directly
    to the evaluator (or layered under a ``ChainMap``). Entries keep their
    first-insertion position when overwritten, which is the display order.
    Non-finite values are always stored with ``SymbolType.UNDEFINED``.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SymbolEntry] = {}

    def __getitem__(self, name: str) -> float:
        return self._entries[name].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SymbolTable({list(self._entries.values())!r})"

    def get_entry(self, name: str) -> SymbolEntry:
        """Return the full entry for ``name``; raises KeyError when unbound."""
        return self._entries[name]

    def set(self, name: str, value: float, type: SymbolType = SymbolType.NUMBER) -> SymbolEntry:
        value = float(value)
        if not math.isfinite(value):
            type = SymbolType.UNDEFINED
        entry = SymbolEntry(name, value, type)
        self._entries[name] = entry
        logger.debug("bound %s = %r (%s)", name, value, type.value)
        return entry

    def list(self) -> list[SymbolEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[str, SymbolEntry]:
        return dict(self._entries)

    def restore(self, snapshot: dict[str, SymbolEntry]) -> None:
        self._entries = dict(snapshot)
