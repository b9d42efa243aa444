"""Persistence for discovered pair -> contract addresses."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Protocol, Union

logger = logging.getLogger(__name__)


class ContractStore(Protocol):
    """Caller-supplied persistence hook."""

    async def save(self, pair_to_address: dict[str, str]) -> None:
        ...

    async def load(self) -> dict[str, str]:
        ...


class JsonFileContractStore:
    """Stores the pair map as a JSON object on disk.

    Writes go to a sibling temp file which then replaces the target, so a
    reader never sees a half-written file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def save(self, pair_to_address: dict[str, str]) -> None:
        snapshot = dict(pair_to_address)
        await asyncio.to_thread(self._write, snapshot)
        logger.debug(f"Saved {len(snapshot)} contracts to {self.path}")

    async def load(self) -> dict[str, str]:
        return await asyncio.to_thread(self._read)

    def _write(self, pair_to_address: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(pair_to_address, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}
