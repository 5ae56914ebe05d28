"""Model listing: filtering, ranking, truncation and failure."""

import httpx
import pytest

from duckli.errors import ModelFetchFailed
from duckli.models import ModelCatalog, ModelDescriptor, Pricing, normalize

from conftest import mock_client_factory


def entry(model_id, name=None, context_length=8000, **extra):
    data = {"id": model_id, "context_length": context_length, **extra}
    if name:
        data["name"] = name
    return data


# 1. normalize()


def test_free_models_are_excluded():
    models = normalize([entry("meta-llama/llama-3:free"), entry("openai/gpt-4")])
    assert [m.id for m in models] == ["openai/gpt-4"]


def test_small_context_models_are_excluded():
    models = normalize([entry("tiny/model", context_length=3999), entry("ok/model", context_length=4000)])
    assert [m.id for m in models] == ["ok/model"]


def test_alphabetical_by_display_name():
    models = normalize([entry("z/model", "Beta"), entry("a/model", "Alpha")])
    assert [m.display_name for m in models] == ["Alpha", "Beta"]


def test_alphabetical_order_ignores_case():
    models = normalize(
        [
            entry("z-ai/glm-4.5", "Z.AI: GLM 4.5"),
            entry("x-ai/grok-4", "xAI: Grok 4"),
            entry("lower/model", "anthropic-lower"),
            entry("baidu/ernie", "Baidu: Ernie"),
        ]
    )
    assert [m.display_name for m in models] == [
        "anthropic-lower",
        "Baidu: Ernie",
        "xAI: Grok 4",
        "Z.AI: GLM 4.5",
    ]


def test_popular_models_first_in_list_order():
    models = normalize(
        [
            entry("aaa/first-alphabetically", "AAA"),
            entry("openai/gpt-4", "GPT-4"),
            entry("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet"),
        ]
    )
    assert [m.id for m in models] == [
        "anthropic/claude-3.5-sonnet",
        "openai/gpt-4",
        "aaa/first-alphabetically",
    ]


def test_truncated_to_fifteen():
    models = normalize([entry(f"vendor/model-{i:02d}") for i in range(20)])
    assert len(models) == 15
    assert models[0].id == "vendor/model-00"


def test_descriptor_fields():
    [model] = normalize(
        [entry("openai/gpt-4", pricing={"prompt": "0.00003", "completion": "0.00006"})]
    )
    assert model == ModelDescriptor(
        "openai/gpt-4", "openai/gpt-4", 8000, Pricing(0.00003, 0.00006)
    )


def test_junk_entries_are_skipped():
    models = normalize([{"name": "no id"}, "nope", entry("ok/model", context_length=None)])
    assert models == []


# 2. ModelCatalog.fetch()


def test_fetch_sends_bearer_credential():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"data": [entry("openai/gpt-4", "GPT-4")]})

    models = ModelCatalog(mock_client_factory(handler)).fetch("k1")

    assert seen == {"path": "/api/v1/models", "auth": "Bearer k1"}
    assert [m.id for m in models] == ["openai/gpt-4"]
    assert models[0].display_name == "GPT-4"


def test_fetch_empty_listing():
    def handler(request):
        return httpx.Response(200, json={"data": []})

    assert ModelCatalog(mock_client_factory(handler)).fetch("k1") == []


def test_fetch_status_error_signals_failure():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "No auth credentials found"}})

    with pytest.raises(ModelFetchFailed):
        ModelCatalog(mock_client_factory(handler)).fetch("bad")


def test_fetch_transport_error_signals_failure():
    def handler(request):
        raise httpx.ConnectError("network unreachable", request=request)

    with pytest.raises(ModelFetchFailed):
        ModelCatalog(mock_client_factory(handler)).fetch("k1")
