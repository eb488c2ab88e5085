"""
Tests for settlement_config.

Path resolution, YAML parsing into frozen dataclasses, validation and the
config trace.
"""

from decimal import Decimal

import pytest
import yaml

from settlement_config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    compute_checksum,
    get_active_config,
    parse_engine_config,
    resolve_config_path,
)
from settlement_kernel.exceptions import ConfigurationError


class TestResolution:
    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/elsewhere.yaml")
        assert resolve_config_path(tmp_path / "x.yaml") == tmp_path / "x.yaml"

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/etc/settlement.yaml")
        assert str(resolve_config_path()) == "/etc/settlement.yaml"

    def test_packaged_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert resolve_config_path() == DEFAULT_CONFIG_PATH


class TestPackagedDefaults:
    def test_loads(self, monkeypatch, captured_logs):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        config = get_active_config()

        assert config.fee_rates.app_rate == Decimal("8")
        assert config.fee_rates.league_rate == Decimal("10")
        assert config.sync.max_workers == 8
        assert config.sync.batch_size == 20
        assert config.classification.default_category == "?"
        assert len(config.checksum) == 64

        trace = next(r for r in captured_logs() if r["message"] == "SETTLEMENT_CONFIG_TRACE")
        assert trace["checksum"] == config.checksum


class TestParsing:
    def test_empty_document_takes_defaults(self):
        config = parse_engine_config({})
        assert config.fee_rates.app_rate == 0
        assert config.sync.batch_size == 20
        assert config.log_level == "INFO"

    def test_classification_keys_upper_cased(self):
        config = parse_engine_config({
            "classification": {
                "manual_links": {"john doe": "CH"},
                "prefix_rules": [{"prefixes": ["ams"], "category": "IMPERIO"}],
                "contains_rules": [{"needle": "tgp", "category": "TGP"}],
            },
        })
        assert dict(config.classification.manual_links) == {"JOHN DOE": "CH"}
        assert config.classification.prefix_rules[0].prefixes == ("AMS",)
        assert config.classification.contains_rules[0].needle == "TGP"

    def test_negative_rate_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_engine_config({"fee_rates": {"app_rate": "-1"}})
        assert exc_info.value.key == "fee_rates.app_rate"

    @pytest.mark.parametrize("value", [0, -3, "many"])
    def test_invalid_workers_rejected(self, value):
        with pytest.raises(ConfigurationError):
            parse_engine_config({"sync": {"max_workers": value}})

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_engine_config({"log_level": "chatty"})

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})


class TestFiles:
    def test_custom_file(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(yaml.safe_dump({"fee_rates": {"league_rate": "12.5"}, "sync": {"max_workers": 2}}))
        config = get_active_config(path)
        assert config.fee_rates.league_rate == Decimal("12.5")
        assert config.sync.max_workers == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("fee_rates: [unclosed")
        with pytest.raises(yaml.YAMLError):
            get_active_config(path)
