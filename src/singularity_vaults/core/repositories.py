"""Immutable in-memory tables for Singularity data models."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import pandas as pd

from .addresses import normalise_address
from .errors import ValidationError
from .models import PoolEntry


class PoolRegistry:
    """Ordered, read-only collection of pools with pandas export.

    Order is preserved from the source table; it is the order in which pools
    are registered with the router during deployment.
    """

    def __init__(self, entries: Iterable[PoolEntry] | None = None) -> None:
        self._entries: tuple[PoolEntry, ...] = tuple(entries) if entries else ()
        seen: set[str] = set()
        for entry in self._entries:
            if entry.pool in seen:
                raise ValidationError(f"Duplicate pool in registry: {entry.pool}")
            seen.add(entry.pool)

    def get(self, pool: str) -> PoolEntry:
        address = normalise_address(pool)
        for entry in self._entries:
            if entry.pool == address:
                return entry
        raise ValidationError(f"Unknown pool: {pool}")

    def by_symbol(self, symbol: str) -> PoolEntry:
        for entry in self._entries:
            if entry.symbol.upper() == symbol.upper():
                return entry
        raise ValidationError(f"No pool for symbol {symbol}")

    def filter(
        self,
        *,
        categories: list[str] | None = None,
        symbols: list[str] | None = None,
    ) -> "PoolRegistry":
        res: list[PoolEntry] = []
        for entry in self._entries:
            if categories and entry.category not in categories:
                continue
            if symbols and entry.symbol not in symbols:
                continue
            res.append(entry)
        return PoolRegistry(res)

    @property
    def pools(self) -> list[str]:
        return [entry.pool for entry in self._entries]

    @property
    def symbols(self) -> list[str]:
        return [entry.symbol for entry in self._entries]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [entry.to_dict() for entry in self._entries],
            columns=["pool", "symbol", "category", "decimals"],
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PoolEntry]:
        return iter(self._entries)

    def __contains__(self, pool: object) -> bool:
        if not isinstance(pool, str):
            return False
        try:
            self.get(pool)
        except ValidationError:
            return False
        return True


__all__ = ["PoolRegistry"]
