"""Saved config, overrides and precedence."""

import json
from unittest.mock import patch

from duckli.config import Config, CredentialStore, Overrides

# 1. CredentialStore


def test_load_missing_file_is_absent(store):
    """No file means no saved config, and nothing gets logged as an error."""
    with patch("duckli.config.log_exception") as mock_log:
        assert store.load() is None
    mock_log.assert_not_called()


def test_load_corrupt_file_is_absent_and_logged(store, config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text("{not json", encoding="utf-8")

    with patch("duckli.config.log_exception") as mock_log:
        assert store.load() is None
    mock_log.assert_called_once()


def test_load_non_object_is_absent(store, config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text('["apiKey"]', encoding="utf-8")

    assert store.load() is None


def test_save_then_load(store, config_path):
    """Save creates the directory and writes the whole record."""
    assert store.save(Config("k1", "openai/gpt-4", "sarcastic"))

    record = json.loads(config_path.read_text(encoding="utf-8"))
    assert record == {"apiKey": "k1", "model": "openai/gpt-4", "personality": "sarcastic"}
    assert store.load() == Config("k1", "openai/gpt-4", "sarcastic")


def test_load_partial_record(store, config_path):
    config_path.parent.mkdir(parents=True)
    config_path.write_text(json.dumps({"apiKey": "k1", "model": 42}), encoding="utf-8")

    loaded = store.load()
    assert loaded.credential == "k1"
    assert loaded.model_id == ""
    assert loaded.personality_id == ""


def test_save_failure_is_not_fatal(tmp_path):
    """A file where the config directory should be makes the write fail."""
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = CredentialStore(str(blocker / "config.json"))

    with patch("duckli.config.log_exception") as mock_log:
        assert store.save(Config("k1", "m", "cheerful")) is False
    mock_log.assert_called_once()


def test_clear(store, config_path):
    store.save(Config("k1", "m", "cheerful"))
    store.clear()
    assert not config_path.exists()
    # Clearing twice is fine
    store.clear()


# 2. Overrides


def test_flag_beats_environment():
    overrides = Overrides(api_key="flag-key", env_api_key="env-key")
    assert overrides.credential == "flag-key"
    assert Overrides(env_api_key="env-key").credential == "env-key"


def test_overrides_layer_on_saved_config():
    saved = Config("saved-key", "saved/model", "serious")

    merged = Overrides(model="other/model").apply(saved)

    assert merged.credential == "saved-key"
    assert merged.model_id == "other/model"
    assert merged.personality_id == "serious"
    assert merged.from_override


def test_no_overrides_keeps_saved_config():
    saved = Config("saved-key", "saved/model", "serious")

    merged = Overrides().apply(saved)

    assert merged == saved
    assert not merged.from_override


def test_from_args_reads_environment():
    class Args:
        api_key = None
        model = None
        personality = "funny"
        reconfigure = False

    overrides = Overrides.from_args(Args(), environ={"OPENROUTER_API_KEY": " env-key "})
    assert overrides.credential == "env-key"
    assert overrides.personality == "funny"


def test_is_complete(personalities):
    assert Config("k", "m", "cheerful").is_complete(personalities)
    assert not Config("k", "m", "nope").is_complete(personalities)
    assert not Config("", "m", "cheerful").is_complete(personalities)


def test_first_missing_follows_field_order(personalities):
    assert Config().first_missing(personalities) == "credential"
    assert Config("k").first_missing(personalities) == "model"
    assert Config("k", "m", "nope").first_missing(personalities) == "personality"
    assert Config("k", "m", "funny").first_missing(personalities) is None
