"""Session configuration, CLI/env overrides and the saved config file."""

import json
import logging
import os

from duckli.errors import ConfigLoadFailure, ConfigSaveFailure
from duckli.globals import API_KEY_ENV, CONFIG_FILE, log_exception

logger = logging.getLogger(__name__)


class Config:
    """The resolved configuration: credential, model and personality."""

    def __init__(
        self,
        credential: str = "",
        model_id: str = "",
        personality_id: str = "",
        from_override: bool = False,
    ):
        self.credential: str = credential
        self.model_id: str = model_id
        self.personality_id: str = personality_id
        # True when a CLI flag or env variable contributed to this config
        self.from_override: bool = from_override

    def first_missing(self, personalities) -> str | None:
        """First unset field in order credential, model, personality. None when complete."""
        if not self.credential:
            return "credential"
        if not self.model_id:
            return "model"
        # An id that does not resolve counts as unset
        if personalities.get(self.personality_id) is None:
            return "personality"
        return None

    def is_complete(self, personalities) -> bool:
        return self.first_missing(personalities) is None

    def to_record(self) -> dict:
        """The on-disk shape of the config."""
        return {
            "apiKey": self.credential,
            "model": self.model_id,
            "personality": self.personality_id,
        }

    @classmethod
    def from_record(cls, record: dict) -> "Config":
        def field(key: str) -> str:
            value = record.get(key)
            return value.strip() if isinstance(value, str) else ""

        return cls(field("apiKey"), field("model"), field("personality"))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Config):
            return NotImplemented
        return self.to_record() == other.to_record()

    def __repr__(self) -> str:
        masked = f"{self.credential[:6]}…" if self.credential else ""
        return (
            f"Config(credential={masked!r}, model_id={self.model_id!r}, "
            f"personality_id={self.personality_id!r}, from_override={self.from_override})"
        )


class Overrides:
    """One-off values supplied on the command line or through the environment."""

    def __init__(
        self,
        api_key: str | None = None,
        env_api_key: str | None = None,
        model: str | None = None,
        personality: str | None = None,
        reconfigure: bool = False,
    ):
        self.api_key = (api_key or "").strip()
        self.env_api_key = (env_api_key or "").strip()
        self.model = (model or "").strip()
        self.personality = (personality or "").strip()
        self.reconfigure = reconfigure

    @classmethod
    def from_args(cls, args, environ=None) -> "Overrides":
        """Builds overrides from an argparse namespace and the environment."""
        environ = os.environ if environ is None else environ
        return cls(
            api_key=args.api_key,
            env_api_key=environ.get(API_KEY_ENV),
            model=args.model,
            personality=args.personality,
            reconfigure=args.reconfigure,
        )

    @property
    def credential(self) -> str:
        """Explicit flag wins over the environment."""
        return self.api_key or self.env_api_key

    def any(self) -> bool:
        return bool(self.credential or self.model or self.personality)

    def apply(self, base: Config | None) -> Config:
        """Layers overrides on top of a saved config (or nothing)."""
        base = base or Config()
        if not self.any():
            return Config(base.credential, base.model_id, base.personality_id)
        return Config(
            credential=self.credential or base.credential,
            model_id=self.model or base.model_id,
            personality_id=self.personality or base.personality_id,
            from_override=True,
        )


class CredentialStore:
    """Reads and writes the saved config record. Never raises to the caller."""

    def __init__(self, path: str = CONFIG_FILE):
        self.path = path

    def load(self) -> Config | None:
        """Loads the config file, None if it is missing or unreadable."""
        try:
            return self._read()
        except FileNotFoundError:
            logger.debug("No saved config at %s", self.path)
            return None
        except ConfigLoadFailure as e:
            log_exception(e, f"Ignoring unreadable config file: {self.path}")
            return None

    def _read(self) -> Config:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigLoadFailure(f"{type(e).__name__}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigLoadFailure("Config file does not hold a JSON object")
        return Config.from_record(data)

    def save(self, config: Config) -> bool:
        """Writes the whole record. Failure is logged, never fatal."""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.to_record(), f, indent=2)
        except OSError as e:
            failure = ConfigSaveFailure(f"Could not write {self.path}: {e}")
            failure.__cause__ = e
            log_exception(failure, "Error in CredentialStore.save()")
            return False
        logger.debug("Config saved to %s", self.path)
        return True

    def clear(self):
        """Removes the config file, a missing file is fine."""
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log_exception(e, f"Could not remove config file: {self.path}")
