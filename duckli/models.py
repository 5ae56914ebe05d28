"""Fetches, filters and ranks the models offered by the backend."""

import logging
from typing import Callable, NamedTuple

from openai import OpenAI

from duckli.client import build_client
from duckli.errors import ModelFetchFailed
from duckli.globals import (
    MAX_LISTED_MODELS,
    MIN_CONTEXT_LENGTH,
    POPULAR_MODELS,
    log_exception,
)

logger = logging.getLogger(__name__)


class Pricing(NamedTuple):
    prompt_rate: float
    completion_rate: float


class ModelDescriptor(NamedTuple):
    id: str
    display_name: str
    context_length: int = 0
    pricing: Pricing | None = None


def _to_int(value) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _to_pricing(value) -> Pricing | None:
    """OpenRouter sends rates as decimal strings"""
    if not isinstance(value, dict):
        return None
    try:
        return Pricing(float(value["prompt"]), float(value["completion"]))
    except (KeyError, TypeError, ValueError):
        return None


def _descriptor(entry: dict) -> ModelDescriptor | None:
    model_id = entry.get("id")
    if not isinstance(model_id, str) or not model_id:
        return None
    name = entry.get("name")
    return ModelDescriptor(
        id=model_id,
        display_name=name if isinstance(name, str) and name else model_id,
        context_length=_to_int(entry.get("context_length")),
        pricing=_to_pricing(entry.get("pricing")),
    )


def _rank(model: ModelDescriptor) -> tuple:
    """Popular models first in list order, then alphabetical by display name."""
    if model.id in POPULAR_MODELS:
        return (0, POPULAR_MODELS.index(model.id), "")
    return (1, 0, model.display_name.casefold())


def normalize(entries: list[dict]) -> list[ModelDescriptor]:
    """Filters, ranks and truncates a raw model listing."""
    models = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        model = _descriptor(entry)
        if model is None:
            continue
        # Drop free tiers and small context windows
        if "free" in model.id or model.context_length < MIN_CONTEXT_LENGTH:
            continue
        models.append(model)
    models.sort(key=_rank)
    return models[:MAX_LISTED_MODELS]


class ModelCatalog:
    """Lists usable models for a credential"""

    def __init__(self, client_factory: Callable[[str], OpenAI] = build_client):
        self.client_factory = client_factory

    def fetch(self, credential: str) -> list[ModelDescriptor]:
        """
        Issues one listing request and returns the normalized result.\n
        Raises ModelFetchFailed on any transport, status or decoding error.
        """
        try:
            client = self.client_factory(credential)
            page = client.models.list()
            entries = [m.to_dict() for m in page.data]
        except Exception as e:
            log_exception(e, "Error in ModelCatalog.fetch()")
            raise ModelFetchFailed(f"Failed to fetch models: {e}") from e
        models = normalize(entries)
        logger.debug("Model listing: %d entries, %d usable", len(entries), len(models))
        return models
