from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from selfheal.core.cache import SelectorCache
from tests.helpers import FakeClock


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = SelectorCache(None, ttl_seconds=3600, clock=clock)
    cache.put("#login", "#login-v2", 0.8)

    clock.advance(59 * 60)
    assert cache.get("#login").healed_identifier == "#login-v2"

    clock.advance(2 * 60)
    assert cache.get("#login") is None
    assert "#login" not in cache


def test_keys_are_case_sensitive():
    cache = SelectorCache(None)
    cache.put("#Login", "#login-v2", 0.8)

    assert cache.get("#login") is None
    assert cache.get("#Login") is not None


def test_put_overwrites_existing_entry():
    clock = FakeClock()
    cache = SelectorCache(None, clock=clock)
    cache.put("#login", "#a", 0.8)
    clock.advance(10)
    cache.put("#login", "#b", 0.5)

    entry = cache.get("#login")
    assert entry.healed_identifier == "#b"
    assert entry.confidence == 0.5
    assert entry.timestamp == clock.now
    assert len(cache) == 1


def test_every_mutation_is_flushed_to_disk(tmp_path):
    path = tmp_path / "cache.json"
    clock = FakeClock(1000.0)
    cache = SelectorCache(path, clock=clock)

    cache.put("#login", "[data-testid='login']", 0.8)
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "#login": {
            "healed_identifier": "[data-testid='login']",
            "timestamp": 1000.0,
            "confidence": 0.8,
        }
    }

    assert cache.invalidate("#login") is True
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_entries_survive_a_new_instance(tmp_path):
    path = tmp_path / "cache.json"
    clock = FakeClock()
    SelectorCache(path, clock=clock).put("#login", "#login-v2", 0.9)

    reloaded = SelectorCache(path, clock=clock)

    assert reloaded.get("#login").healed_identifier == "#login-v2"
    assert reloaded.get("#login").confidence == 0.9


def test_missing_file_is_an_empty_cache(tmp_path):
    cache = SelectorCache(tmp_path / "absent.json")

    assert len(cache) == 0
    assert not (tmp_path / "absent.json").exists()


def test_corrupt_file_is_treated_as_empty(tmp_path, caplog):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")

    cache = SelectorCache(path)

    assert len(cache) == 0
    assert "Could not load selector cache" in caplog.text


def test_invalidate_unknown_key_does_not_write(tmp_path):
    path = tmp_path / "cache.json"
    cache = SelectorCache(path)

    assert cache.invalidate("#missing") is False
    assert not path.exists()


def test_clear_removes_entries_and_file(tmp_path):
    path = tmp_path / "cache.json"
    cache = SelectorCache(path)
    cache.put("#a", "#b", 0.8)
    cache.put("#c", "#d", 0.8)

    cache.clear()

    assert len(cache) == 0
    assert not path.exists()


def test_confidence_must_be_a_probability():
    cache = SelectorCache(None)

    with pytest.raises(ValidationError):
        cache.put("#login", "#login-v2", 1.5)
    assert len(cache) == 0
