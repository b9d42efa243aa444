"""Tests for settings and option objects."""

import pytest
from pydantic import ValidationError

from rujira.config import (
    FIN_CODE_ID,
    GRAPHQL_MAINNET,
    GRAPHQL_STAGENET,
    THORNODE_MAINNET,
    THORNODE_STAGENET,
    QuoteEngineOptions,
    RujiraSettings,
)


def make_settings(**kwargs) -> RujiraSettings:
    return RujiraSettings(_env_file=None, **kwargs)


class TestRujiraSettings:
    """Tests for RujiraSettings."""

    def test_defaults(self):
        """Defaults target mainnet."""
        settings = make_settings()

        assert settings.network == "mainnet"
        assert settings.resolved_thornode_url == THORNODE_MAINNET
        assert settings.resolved_graphql_url == GRAPHQL_MAINNET
        assert settings.fin_code_id == FIN_CODE_ID
        assert settings.default_slippage_bps == 100

    def test_stagenet_preset(self):
        """Stagenet preset switches both endpoints."""
        settings = make_settings(network="stagenet")

        assert settings.resolved_thornode_url == THORNODE_STAGENET
        assert settings.resolved_graphql_url == GRAPHQL_STAGENET

    def test_explicit_urls_win(self):
        """Explicit URLs override presets."""
        settings = make_settings(thornode_url="https://my-node.example/", graphql_url="https://gql.example")

        assert settings.resolved_thornode_url == "https://my-node.example"
        assert settings.resolved_graphql_url == "https://gql.example"

    def test_reads_environment(self, monkeypatch):
        """Settings read RUJIRA_ environment variables."""
        monkeypatch.setenv("RUJIRA_NETWORK", "stagenet")
        monkeypatch.setenv("RUJIRA_BATCH_CONCURRENCY", "5")

        settings = make_settings()

        assert settings.network == "stagenet"
        assert settings.batch_concurrency == 5

    def test_slippage_bounds(self):
        """Out-of-range slippage is rejected."""
        with pytest.raises(ValidationError):
            make_settings(default_slippage_bps=0)

    def test_safe_dict_redacts_key(self):
        """The API key is redacted."""
        settings = make_settings(graphql_api_key="super-secret")
        safe = settings.get_safe_dict()

        assert safe["graphql_api_key"] == "***"
        assert "super-secret" not in str(safe)

    def test_quote_engine_options(self):
        """Settings map onto engine options."""
        settings = make_settings(quote_ttl_ms=90000, quote_cache_ttl_ms=0, dust_threshold=10)
        options = settings.quote_engine_options({"rune/btc-btc": "thor1abc"})

        assert options.quote_ttl_ms == 90000
        assert options.cache_enabled is False
        assert options.dust_threshold == 10
        assert options.contracts == {"rune/btc-btc": "thor1abc"}

    def test_discovery_options(self):
        """Settings map onto discovery options."""
        options = make_settings(discovery_cache_ttl_ms=0, fin_code_id=99).discovery_options()

        assert options.cache_ttl_ms == 0
        assert options.fin_code_id == 99


class TestQuoteEngineOptions:
    """Tests for QuoteEngineOptions defaults."""

    def test_defaults(self):
        """Engine defaults keep the buffer below the TTL."""
        options = QuoteEngineOptions()

        assert options.quote_ttl_ms == 120000
        assert options.quote_expiry_buffer_ms == 60000
        assert options.quote_expiry_buffer_ms < options.quote_ttl_ms
        assert options.batch_concurrency == 3
        assert options.contracts == {}

    def test_contracts_not_shared(self):
        """Each options instance has its own table."""
        assert QuoteEngineOptions().contracts is not QuoteEngineOptions().contracts
