"""Tabular exports of protocol state for analysis and CSV reports."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from .chain import Chain
from .core.constants import PRICE_PRECISION
from .singularity import Singularity

_POOL_COLUMNS = [
    "pool",
    "symbol",
    "vault",
    "implementation",
    "total_shares",
    "total_underlying",
    "held_underlying",
    "price_per_share",
    "reward_rate",
    "period_finish",
    "reward_reserve",
]

_POSITION_COLUMNS = [
    "pool",
    "account",
    "shares",
    "underlying",
    "principal",
    "reward_per_share_paid",
    "unsettled_rewards",
    "checkpoint_block",
    "is_open",
    "earned_eth",
]


def _ensure_outdir(outdir: str | Path) -> Path:
    p = Path(outdir)
    p.mkdir(parents=True, exist_ok=True)
    return p


def pools_frame(singularity: Singularity) -> pd.DataFrame:
    """One row per registered pool with its vault counters."""

    rows = []
    for pool in singularity.pools():
        vault = singularity.vault(pool)
        rows.append(
            {
                "pool": pool,
                "symbol": vault.underlying.symbol,
                "vault": vault.address,
                "implementation": vault.implementation,
                "total_shares": vault.total_supply,
                "total_underlying": vault.total_underlying,
                "held_underlying": vault.held_underlying(),
                "price_per_share": vault.price_per_share / PRICE_PRECISION,
                "reward_rate": vault.reward_rate,
                "period_finish": vault.period_finish,
                "reward_reserve": vault.reward_reserve,
            }
        )
    return pd.DataFrame(rows, columns=_POOL_COLUMNS)


def positions_frame(singularity: Singularity, accounts: Iterable[str]) -> pd.DataFrame:
    """Positions of ``accounts`` in every pool; accounts that never deposited are skipped."""

    accounts = list(accounts)
    rows = []
    for pool in singularity.pools():
        vault = singularity.vault(pool)
        for account in accounts:
            position = vault.position(account)
            if position.shares == 0 and position.checkpoint_block == 0:
                continue
            row = position.to_dict()
            row["earned_eth"] = vault.earned_eth(account)
            rows.append(row)
    return pd.DataFrame(rows, columns=_POSITION_COLUMNS)


def events_frame(chain: Chain, name: str | None = None) -> pd.DataFrame:
    """Committed events, optionally restricted to one event name."""

    rows = [event.to_dict() for event in chain.events(name)]
    if not rows:
        return pd.DataFrame(columns=["name", "address", "block_number", "log_index"])
    return pd.DataFrame(rows)


def write_report(
    singularity: Singularity,
    accounts: Iterable[str],
    outdir: str | Path,
) -> dict[str, Path]:
    """Write pools, positions and events as CSV files into ``outdir``."""

    out = _ensure_outdir(outdir)
    frames = {
        "pools": pools_frame(singularity),
        "positions": positions_frame(singularity, accounts),
        "events": events_frame(singularity.chain),
    }
    paths: dict[str, Path] = {}
    for name, frame in frames.items():
        path = out / f"{name}.csv"
        frame.to_csv(path, index=False)
        paths[name] = path
    return paths


__all__ = ["pools_frame", "positions_frame", "events_frame", "write_report"]
