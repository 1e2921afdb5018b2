import dataclasses
import ntpath
import sys

import pytest

from posagent.config import (
    ConfigError,
    ConfigMalformedError,
    ConfigMissingError,
    default_config_path,
    default_log_path,
    default_machine_id_path,
    default_secrets_path,
    defaults,
    load,
    validate,
)


def _write(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return str(path)


def test_defaults():
    c = defaults()
    assert c.version == "0.1.0"
    assert c.listen_port == 47291
    assert c.log_level == "info"
    assert c.printer_name == ""
    assert c.cloud_base_url == "https://web-production-6bb4d.up.railway.app"
    assert c.heartbeat_seconds == 300
    assert len(c.allowed_origins) == 2
    assert c.paper_width_mm == 80


def test_defaults_are_independent():
    a = defaults()
    a.allowed_origins.append("https://other.example")
    assert len(defaults().allowed_origins) == 2


def test_defaults_two_printer_fields():
    c = defaults()
    assert c.receipt_printer_name == ""
    assert c.label_printer_name == ""
    assert c.tspl_dialect == "standard"


def test_load_missing_file(tmp_path):
    path = str(tmp_path / "does-not-exist.json")
    with pytest.raises(ConfigMissingError) as info:
        load(path)
    assert info.value.config.listen_port == 47291


def test_load_malformed_json(tmp_path):
    path = _write(tmp_path, "bad.json", "{not valid json")
    with pytest.raises(ConfigMalformedError) as info:
        load(path)
    assert info.value.config.listen_port == 47291


def test_load_unknown_field(tmp_path):
    path = _write(tmp_path, "unknown.json", '{"listen_port": 8080, "mystery_field": true}')
    with pytest.raises(ConfigMalformedError):
        load(path)


@pytest.mark.parametrize(
    "body",
    ['{"listen_port": "8080"}', '{"log_level": 3}', "[1, 2]", '{"allowed_origins": "x"}'],
)
def test_load_mistyped_values_are_malformed(tmp_path, body):
    path = _write(tmp_path, "typed.json", body)
    with pytest.raises(ConfigMalformedError):
        load(path)


def test_load_partial_override(tmp_path):
    path = _write(tmp_path, "partial.json", '{"listen_port": 9000}')
    cfg = load(path)
    assert cfg.listen_port == 9000
    assert cfg.log_level == "info"
    assert cfg.version == "0.1.0"
    assert len(cfg.allowed_origins) == 2
    assert cfg.paper_width_mm == 80


def test_load_paper_width_58_ok(tmp_path):
    path = _write(tmp_path, "paper58.json", '{"paper_width_mm": 58}')
    cfg = load(path)
    assert cfg.paper_width_mm == 58
    validate(cfg)
    assert cfg.paper_width_mm in (58, 80)


def test_validate_success():
    cfg = defaults()
    validate(cfg)
    assert cfg == defaults()


@pytest.mark.parametrize(
    "changes, want",
    [
        ({"version": ""}, "version"),
        ({"listen_port": 0}, "listen_port"),
        ({"listen_port": -1}, "listen_port"),
        ({"listen_port": 70000}, "listen_port"),
        ({"log_level": "verbose"}, "log_level"),
        ({"log_level": ""}, "log_level"),
        ({"allowed_origins": ["https://ok.example", ""]}, "allowed_origins"),
        ({"heartbeat_seconds": 0}, "heartbeat_seconds"),
        ({"heartbeat_seconds": -5}, "heartbeat_seconds"),
        ({"paper_width_mm": 0}, "paper_width_mm"),
        ({"paper_width_mm": 76}, "paper_width_mm"),
        ({"paper_width_mm": 112}, "paper_width_mm"),
        ({"paper_width_mm": -1}, "paper_width_mm"),
    ],
)
def test_validate_invalid_fields(changes, want):
    cfg = dataclasses.replace(defaults(), **changes)
    with pytest.raises(ConfigError) as info:
        validate(cfg)
    assert want in str(info.value)


def test_load_back_compat_legacy_printer_name_maps(tmp_path):
    path = _write(tmp_path, "legacy.json", '{"printer_name": "SP-331"}')
    cfg = load(path)
    assert cfg.printer_name == "SP-331"
    assert cfg.receipt_printer_name == "SP-331"


def test_load_back_compat_new_field_wins_over_legacy(tmp_path):
    body = '{"printer_name": "legacy-name", "receipt_printer_name": "new-name"}'
    path = _write(tmp_path, "both.json", body)
    cfg = load(path)
    assert cfg.receipt_printer_name == "new-name"


def test_load_two_printer_config(tmp_path):
    body = """{
        "receipt_printer_name": "Star SP-331",
        "label_printer_name": "Xprinter XP-DT426B",
        "tspl_dialect": "standard"
    }"""
    path = _write(tmp_path, "two-printer.json", body)
    cfg = load(path)
    assert cfg.receipt_printer_name == "Star SP-331"
    assert cfg.label_printer_name == "Xprinter XP-DT426B"
    assert cfg.tspl_dialect == "standard"
    validate(cfg)


def test_load_rongta_dialect(tmp_path):
    body = '{"label_printer_name": "Rongta RP-410", "tspl_dialect": "rongta"}'
    path = _write(tmp_path, "rongta.json", body)
    cfg = load(path)
    assert cfg.tspl_dialect == "rongta"
    validate(cfg)


@pytest.mark.parametrize("dialect", ["", "stanard", "zpl", "STANDARD"])
def test_validate_invalid_tspl_dialect(dialect):
    cfg = dataclasses.replace(defaults(), tspl_dialect=dialect)
    with pytest.raises(ConfigError) as info:
        validate(cfg)
    assert "tspl_dialect" in str(info.value)


def test_default_paths_non_windows(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    assert default_config_path() == "./config.json"
    assert default_machine_id_path() == "./machine_id"
    assert default_secrets_path() == "./secrets.json"
    assert default_log_path() == "./agent.log"


def test_default_paths_windows(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.setenv("ProgramData", "D:\\Data")
    assert default_config_path() == ntpath.join("D:\\Data", "Simsim", "POSAgent", "config.json")
    assert "Simsim" in default_machine_id_path()
    assert default_machine_id_path().endswith("machine_id")
    assert default_secrets_path().endswith("secrets.dat")
    assert default_log_path() == ntpath.join("D:\\Data", "Simsim", "POSAgent", "logs", "agent.log")


def test_default_paths_windows_fallback(monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.delenv("ProgramData", raising=False)
    assert default_config_path().startswith("C:\\ProgramData")