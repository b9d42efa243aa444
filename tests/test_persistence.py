"""Tests for the JSON contract store."""

import json

import pytest

from rujira.persistence import JsonFileContractStore


class TestJsonFileContractStore:
    """Tests for JsonFileContractStore."""

    @pytest.mark.asyncio
    async def test_load_missing_file(self, tmp_path):
        """A missing file loads as empty."""
        store = JsonFileContractStore(tmp_path / "contracts.json")
        assert await store.load() == {}

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        """Saved contracts load back without a temp file left behind."""
        store = JsonFileContractStore(tmp_path / "nested" / "contracts.json")
        contracts = {"rune/btc-btc": "thor1abc", "rune/eth-eth": "thor1def"}

        await store.save(contracts)

        assert await store.load() == contracts
        assert not (tmp_path / "nested" / "contracts.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_save_overwrites(self, tmp_path):
        """Saving replaces the previous contents."""
        path = tmp_path / "contracts.json"
        store = JsonFileContractStore(path)

        await store.save({"a/b": "thor1old"})
        await store.save({"a/b": "thor1new"})

        assert json.loads(path.read_text()) == {"a/b": "thor1new"}

    @pytest.mark.asyncio
    async def test_non_object_file(self, tmp_path):
        """A non-object file is rejected."""
        path = tmp_path / "contracts.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError):
            await JsonFileContractStore(path).load()
