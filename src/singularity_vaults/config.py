from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, cast

from .core.constants import DEFAULT_MIN_DELAY, SECONDS_PER_BLOCK
from .sources import DEFAULT_REGISTRY_PATH

logger = logging.getLogger(__name__)


def default_config() -> dict[str, Any]:
    return {
        "chain": {
            "chain_id": 1,
            "seconds_per_block": SECONDS_PER_BLOCK,
            "accounts": 10,
            "initial_balance_eth": 100,
        },
        "timelock": {"min_delay": DEFAULT_MIN_DELAY},
        "registry": {"path": str(DEFAULT_REGISTRY_PATH)},
        "rewards": {
            "pool": "WETH",
            "eth_bonus": 10,
            "duration_blocks": 10_000,
        },
        "scenario": {
            "deposits": {"USDC": 4000, "WETH": 12},
            "holder_balances": {"USDC": 1_000_000},
            "blocks": 1000,
        },
        "output": {"outdir": None},
        "logging": {"level": "INFO"},
    }


def load_config(path: str | Path | None) -> dict[str, Any]:
    """Load configuration from a TOML file and merge with defaults.

    Parameters
    ----------
    path:
        Optional path to a configuration file. When ``None`` or missing, the
        built-in defaults are used.

    Returns
    -------
    dict[str, Any]
        Configuration dictionary with any file overrides applied table by
        table.
    """

    default = default_config()
    cfg_path = Path(path) if path else None

    if cfg_path and cfg_path.is_file():
        with open(cfg_path, "rb") as f:
            file_cfg = tomllib.load(f)
        for k, v in file_cfg.items():
            if isinstance(v, dict) and k in default and isinstance(default[k], dict):
                cast(dict, default[k]).update(v)
            else:
                default[k] = v
    elif cfg_path:
        logger.warning("Config file not found at %s. Using defaults.", cfg_path)

    return default


def apply_env_overrides(cfg: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Apply ``SINGULARITY_*`` environment variables on top of ``cfg``."""

    env = os.environ if environ is None else environ
    if outdir := env.get("SINGULARITY_OUTDIR"):
        cfg.setdefault("output", {})["outdir"] = outdir
    if registry := env.get("SINGULARITY_REGISTRY"):
        cfg.setdefault("registry", {})["path"] = registry
    if delay := env.get("SINGULARITY_MIN_DELAY"):
        try:
            cfg.setdefault("timelock", {})["min_delay"] = int(delay)
        except ValueError:
            logger.warning("Ignoring non-integer SINGULARITY_MIN_DELAY=%r", delay)
    return cfg


__all__ = ["default_config", "load_config", "apply_env_overrides"]
