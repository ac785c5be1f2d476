"""CSV-backed pool registry source."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..core import PoolEntry, normalise_address
from ..core.constants import POOL_CATEGORIES


class RegistryCSVSource:
    """Load registry rows from a CSV with ``pool``, ``symbol`` and ``category`` columns.

    ``decimals`` is optional and defaults to 18.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch(self) -> list[PoolEntry]:
        df = pd.read_csv(self.path, dtype={"pool": str, "symbol": str, "category": str})
        required = {"pool", "symbol", "category"}
        missing = required.difference(df.columns)
        if missing:
            raise ValueError(f"CSV missing columns: {missing}")
        entries: list[PoolEntry] = []
        for _, r in df.iterrows():
            category = str(r["category"]).strip().lower()
            if category not in POOL_CATEGORIES:
                raise ValueError(f"Unknown pool category {category!r} in {self.path}")
            decimals = r.get("decimals", 18)
            entries.append(
                PoolEntry(
                    pool=normalise_address(str(r["pool"]).strip()),
                    symbol=str(r["symbol"]).strip(),
                    category=category,
                    decimals=int(18 if pd.isna(decimals) else decimals),
                )
            )
        return entries


__all__ = ["RegistryCSVSource"]
