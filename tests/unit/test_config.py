"""Tests for wealthfeed.core.config."""

import logging
import os

import pytest
from pydantic import ValidationError

from wealthfeed.core.config import (
    CoinGeckoConfig,
    FrankfurterConfig,
    LoggingConfig,
    MetalsConfig,
    RefreshConfig,
    WealthfeedConfig,
    YahooConfig,
    _auto_cast,
    _merge_env_vars,
    configure_logging,
    load_config,
)
from wealthfeed.core.exceptions import ConfigError


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No stray WEALTHFEED_* variables or ./wealthfeed.yml."""
    for key in list(os.environ):
        if key.startswith("WEALTHFEED_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestSourceConfigs:
    def test_defaults(self):
        c = WealthfeedConfig()
        assert c.yahoo.timeout == 15.0
        assert c.coingecko.min_interval == 2.0
        assert c.frankfurter.cache_ttl == 24 * 60 * 60
        assert c.metals.min_interval == 30 * 60
        assert c.metals.cache_ttl == 5 * 60
        assert c.currency.cache_ttl == 60 * 60
        assert c.metals.api_key is None

    def test_trailing_slash_stripped(self):
        assert YahooConfig(base_url="https://example.test/").base_url == "https://example.test"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError, match="timeout must be > 0"):
            FrankfurterConfig(timeout=0)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError, match="min_interval"):
            CoinGeckoConfig(min_interval=-1)

    def test_numeric_api_key_becomes_string(self):
        assert MetalsConfig(api_key=12345).api_key == "12345"

    def test_frozen(self):
        c = YahooConfig()
        with pytest.raises(ValidationError):
            c.timeout = 3


class TestRefreshConfig:
    def test_codes_normalised(self):
        c = RefreshConfig(crypto_vs_currency="EUR", sync_base_currency="gbp")
        assert c.crypto_vs_currency == "eur"
        assert c.sync_base_currency == "GBP"


class TestLoggingConfig:
    def test_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level(self):
        with pytest.raises(ValidationError, match="unknown log level"):
            LoggingConfig(level="chatty")

    def test_configure_logging_sets_root_level(self, monkeypatch):
        calls = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
        configure_logging(LoggingConfig(level="WARNING"))
        assert calls[0]["level"] == "WARNING"


class TestAutoCast:
    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("False", False), ("42", 42), ("2.5", 2.5), ("abc", "abc")],
    )
    def test_cast(self, raw, expected):
        assert _auto_cast(raw) == expected


class TestMergeEnvVars:
    def test_nested_override(self, monkeypatch):
        monkeypatch.setenv("WEALTHFEED_METALS__API_KEY", "secret")
        merged = _merge_env_vars({"metals": {"timeout": 5}}, "WEALTHFEED_")
        assert merged["metals"] == {"timeout": 5, "api_key": "secret"}

    def test_base_not_mutated(self, monkeypatch):
        monkeypatch.setenv("WEALTHFEED_YAHOO__TIMEOUT", "20")
        base = {"yahoo": {"timeout": 5}}
        _merge_env_vars(base, "WEALTHFEED_")
        assert base == {"yahoo": {"timeout": 5}}

    def test_config_path_variable_ignored(self, monkeypatch):
        monkeypatch.setenv("WEALTHFEED_CONFIG", "/nowhere.yml")
        assert "config" not in _merge_env_vars({}, "WEALTHFEED_")


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config()
        assert config.storage.sqlite_path == "./data/wealthfeed.db"
        assert config.refresh.crypto_vs_currency == "usd"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "custom.yml"
        path.write_text("coingecko:\n  min_interval: 6\ncurrency:\n  default_locale: de-DE\n")
        config = load_config(str(path))
        assert config.coingecko.min_interval == 6
        assert config.currency.default_locale == "de-DE"

    def test_default_file_in_cwd(self, tmp_path):
        (tmp_path / "wealthfeed.yml").write_text("api:\n  port: 9000\n")
        assert load_config().api.port == 9000

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yml"
        path.write_text("metals:\n  api_key: from-yaml\n")
        monkeypatch.setenv("WEALTHFEED_METALS__API_KEY", "from-env")
        assert load_config(str(path)).metals.api_key == "from-env"

    def test_config_env_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yml"
        path.write_text("logging:\n  level: debug\n")
        monkeypatch.setenv("WEALTHFEED_CONFIG", str(path))
        assert load_config().logging.level == "DEBUG"

    def test_missing_file(self):
        with pytest.raises(ConfigError, match="not found"):
            load_config("/definitely/missing.yml")

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path))

    def test_invalid_value_wrapped(self, monkeypatch):
        monkeypatch.setenv("WEALTHFEED_YAHOO__TIMEOUT", "-3")
        with pytest.raises(ConfigError):
            load_config()
