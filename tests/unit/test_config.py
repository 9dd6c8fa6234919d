"""
Unit tests for configuration loading (YAML + env overrides).
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from nodeident.config import CertificateConfig, NodeIdentConfig, load_config
from nodeident.errors import ConfigurationError, EncodingError

REPO_DEFAULTS = Path(__file__).resolve().parents[2] / "config" / "default.yaml"


class TestDefaults:
    def test_no_file(self):
        config = load_config(None)
        assert config.logging.level == "INFO"
        assert config.certificate.algorithm == "ecdsa-p256"
        assert config.certificate.not_before == datetime(1975, 1, 1, tzinfo=timezone.utc)
        assert config.harness.deriver_command == []

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config == NodeIdentConfig()

    def test_shipped_defaults_match_code_defaults(self):
        config = load_config(REPO_DEFAULTS)
        assert config.certificate == CertificateConfig()
        assert config.harness.timeout_s == 120


class TestYaml:
    def test_values_loaded(self, tmp_path):
        path = tmp_path / "nodeident.yaml"
        path.write_text(
            "logging:\n  level: DEBUG\n  format: json\n"
            "certificate:\n  algorithm: ed25519\n  common_name: node-9\n"
            "harness:\n  deriver_command: [go, run, ./load-node-id, '{cert}']\n"
        )
        config = load_config(path)
        assert config.logging.format == "json"
        assert config.certificate.common_name == "node-9"
        assert config.harness.deriver_command[-1] == "{cert}"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("logging: [unclosed\n")
        with pytest.raises(EncodingError):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(EncodingError, match="mapping"):
            load_config(path)

    def test_inverted_validity(self, tmp_path):
        path = tmp_path / "window.yaml"
        path.write_text(
            "certificate:\n"
            "  not_before: 2030-01-01T00:00:00Z\n"
            "  not_after: 2020-01-01T00:00:00Z\n"
        )
        with pytest.raises(ConfigurationError, match="not_after"):
            load_config(path)

    def test_naive_validity_rejected(self, tmp_path):
        path = tmp_path / "naive.yaml"
        path.write_text("certificate:\n  not_before: 2020-01-01 00:00:00\n")
        with pytest.raises(ConfigurationError, match="timezone offset"):
            load_config(path)


class TestEnvOverrides:
    def test_nested_env(self, monkeypatch):
        monkeypatch.setenv("NODEIDENT_LOGGING__LEVEL", "WARNING")
        assert load_config().logging.level == "WARNING"

    def test_naive_env_timestamp_rejected(self, monkeypatch):
        monkeypatch.setenv("NODEIDENT_CERTIFICATE__NOT_BEFORE", "2020-01-01T00:00:00")
        with pytest.raises(ConfigurationError, match="timezone offset"):
            load_config()

    def test_offset_env_timestamp_accepted(self, monkeypatch):
        monkeypatch.setenv("NODEIDENT_CERTIFICATE__NOT_BEFORE", "2020-01-01T00:00:00+02:00")
        not_before = load_config().certificate.not_before
        assert not_before == datetime(2019, 12, 31, 22, tzinfo=timezone.utc)

    def test_shortcut_env_beats_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "nodeident.yaml"
        path.write_text("certificate:\n  algorithm: rsa-2048\n")
        monkeypatch.setenv("NODEIDENT_ALGORITHM", "ed25519")
        assert load_config(path).certificate.algorithm == "ed25519"
