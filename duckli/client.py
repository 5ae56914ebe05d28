"""OpenAI SDK client pointed at the OpenRouter backend."""

import httpx
from openai import OpenAI

from duckli.globals import API_BASE_URL, CLIENT_TITLE


def build_client(
    credential: str,
    base_url: str = API_BASE_URL,
    http_client: httpx.Client | None = None,
) -> OpenAI:
    """
    Bearer-authenticated client with the identifying title header.\n
    SDK retries are disabled: a failed call is reported once, never repeated.
    """
    return OpenAI(
        base_url=base_url,
        api_key=credential,
        default_headers={"X-Title": CLIENT_TITLE},
        max_retries=0,
        http_client=http_client,
    )
