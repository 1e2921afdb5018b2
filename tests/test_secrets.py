import json
import os
from datetime import datetime, timedelta, timezone

import pytest

from posagent.secrets import (
    JSONFileSecretStore,
    NoSecretsError,
    SecretStore,
    Secrets,
    new_secret_store,
    write_atomic,
)


def _fixture_secrets():
    return Secrets(
        terminal_id="trm_test",
        terminal_token="token",
        store_id="store_test",
        paired_at=datetime(2024, 1, 2, 3, 4, 5, 123000, tzinfo=timezone.utc),
    )


def test_json_store_round_trip(tmp_path):
    store = JSONFileSecretStore(str(tmp_path / "secrets.json"))
    want = _fixture_secrets()
    store.save(want)
    assert store.load() == want


def test_round_trip_preserves_offset_instant(tmp_path):
    store = JSONFileSecretStore(str(tmp_path / "secrets.json"))
    tz = timezone(timedelta(hours=1))
    want = Secrets("trm_test", "token", "store_test", datetime(2024, 6, 1, 12, 0, tzinfo=tz))
    store.save(want)
    got = store.load()
    assert got.paired_at == want.paired_at
    assert got.paired_at.utcoffset() == timedelta(hours=1)


def test_load_missing_raises_no_secrets(tmp_path):
    store = JSONFileSecretStore(str(tmp_path / "absent.json"))
    with pytest.raises(NoSecretsError):
        store.load()


def test_load_garbage_raises_value_error(tmp_path):
    path = tmp_path / "bad.json"
    path.write_bytes(b"\x00\x01\x02 garbage")
    with pytest.raises(ValueError) as info:
        JSONFileSecretStore(str(path)).load()
    assert not isinstance(info.value, NoSecretsError)


def test_clear_removes_and_is_idempotent(tmp_path):
    path = tmp_path / "secrets.json"
    store = JSONFileSecretStore(str(path))
    store.save(_fixture_secrets())
    store.clear()
    assert not path.exists()
    store.clear()
    with pytest.raises(NoSecretsError):
        store.load()


def test_saved_file_is_indented_json_with_wire_keys(tmp_path):
    path = tmp_path / "secrets.json"
    JSONFileSecretStore(str(path)).save(_fixture_secrets())
    text = path.read_text(encoding="utf-8")
    doc = json.loads(text)
    assert set(doc) == {"terminal_id", "terminal_token", "store_id", "paired_at"}
    assert doc["terminal_token"] == "token"
    assert '\n  "terminal_id"' in text


def test_paired_at_serialises_as_rfc3339_utc():
    s = Secrets("trm_test", "token", "store_test", datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    assert s.to_dict()["paired_at"] == "2024-01-02T03:04:05Z"


def test_zero_time_default():
    assert Secrets().to_dict()["paired_at"] == "0001-01-01T00:00:00Z"
    assert Secrets.from_dict({}).paired_at == Secrets().paired_at


def test_from_dict_ignores_unknown_keys_and_parses_z():
    s = Secrets.from_dict(
        {"terminal_id": "trm_test", "extra": 1, "paired_at": "2024-01-02T03:04:05Z"}
    )
    assert s.terminal_id == "trm_test"
    assert s.paired_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "doc",
    [{"terminal_id": 5}, {"paired_at": "yesterday"}, {"paired_at": 17}, ["a"]],
)
def test_from_dict_rejects_bad_types(doc):
    with pytest.raises(ValueError):
        Secrets.from_dict(doc)


def test_write_atomic_creates_parents_and_leaves_no_tmp(tmp_path):
    path = tmp_path / "a" / "b" / "out.bin"
    write_atomic(str(path), b"payload", 0o600)
    assert path.read_bytes() == b"payload"
    assert not os.path.exists(str(path) + ".tmp")


def test_write_atomic_overwrites(tmp_path):
    path = tmp_path / "out.bin"
    write_atomic(str(path), b"first-longer-content", 0o600)
    write_atomic(str(path), b"second", 0o600)
    assert path.read_bytes() == b"second"


def test_write_atomic_fails_when_target_is_directory(tmp_path):
    target = tmp_path / "dir"
    target.mkdir()
    with pytest.raises(OSError):
        write_atomic(str(target), b"x", 0o600)
    assert not os.path.exists(str(target) + ".tmp")


def test_new_secret_store_round_trips(tmp_path):
    store = new_secret_store(str(tmp_path / "secrets.json"))
    assert isinstance(store, SecretStore)
    want = _fixture_secrets()
    store.save(want)
    assert store.load() == want