"""Unit tests for wabot.config: key conversion, file loading, environment overrides."""

from __future__ import annotations

import json

from wabot.config.loader import (
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    load_config,
    save_config,
    snake_to_camel,
)
from wabot.config.schema import Config


class TestKeyConversion:
    def test_camel_to_snake(self):
        assert camel_to_snake("restartDelayS") == "restart_delay_s"
        assert camel_to_snake("logCapacity") == "log_capacity"
        assert camel_to_snake("url") == "url"

    def test_snake_to_camel(self):
        assert snake_to_camel("restart_delay_s") == "restartDelayS"
        assert snake_to_camel("port") == "port"

    def test_nested(self):
        data = {"runtime": {"logCapacity": 10}, "items": [{"someKey": 1}]}
        assert convert_keys(data) == {"runtime": {"log_capacity": 10}, "items": [{"some_key": 1}]}
        assert convert_to_camel(convert_keys(data)) == data


class TestLoadConfig:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        config = load_config(tmp_path / "missing.json")
        assert config.server.port == 3000
        assert config.store.path == "whatsapp.db"
        assert config.runtime.restart_delay_s == 2.0
        assert config.runtime.responder == "echo"
        assert config.runtime.log_capacity == 100

    def test_reads_camel_case_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "bridge": {"url": "ws://bridge:3001", "token": "secret"},
            "runtime": {"restartDelayS": 5, "responder": "silent"},
        }))
        config = load_config(path)
        assert config.bridge.url == "ws://bridge:3001"
        assert config.bridge.token == "secret"
        assert config.runtime.restart_delay_s == 5
        assert config.runtime.responder == "silent"

    def test_invalid_file_falls_back_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path).server.port == 3000

    def test_invalid_values_fall_back_to_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"runtime": {"logCapacity": 0}}))
        assert load_config(path).runtime.log_capacity == 100

    def test_port_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert load_config(tmp_path / "missing.json").server.port == 8080

    def test_invalid_port_env_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        assert load_config(tmp_path / "missing.json").server.port == 3000

    def test_prefixed_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.setenv("WABOT_BRIDGE__URL", "ws://elsewhere:9000")
        assert load_config(tmp_path / "missing.json").bridge.url == "ws://elsewhere:9000"

    def test_save_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        config = Config()
        config.server.port = 4000
        path = save_config(config, tmp_path / "out" / "config.json")
        assert "restartDelayS" in json.loads(path.read_text())["runtime"]
        assert load_config(path).server.port == 4000
