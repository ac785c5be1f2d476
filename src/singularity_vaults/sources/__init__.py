"""Registry sources used to build :class:`~singularity_vaults.core.PoolRegistry`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from ..core import PoolEntry, PoolRegistry
from .csv import RegistryCSVSource

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parents[1] / "data" / "pools.csv"


class RegistrySource(Protocol):
    """Adapter protocol returning rows compatible with :class:`PoolRegistry`."""

    def fetch(self) -> list[PoolEntry]: ...


def load_registry(source: RegistrySource | str | Path | None = None) -> PoolRegistry:
    """Build the pool table once, at initialisation.

    ``None`` loads the bundled mainnet pool list, a path loads a CSV, and any
    object with a ``fetch`` method is used as is.
    """

    if source is None:
        source = RegistryCSVSource(DEFAULT_REGISTRY_PATH)
    elif isinstance(source, (str, Path)):
        source = RegistryCSVSource(source)
    registry = PoolRegistry(source.fetch())
    logger.debug("Loaded %d pools from %s", len(registry), source.__class__.__name__)
    return registry


__all__ = ["RegistrySource", "RegistryCSVSource", "DEFAULT_REGISTRY_PATH", "load_registry"]
