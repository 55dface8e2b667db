"""LLM client — HTTP connection to the narrative text-generation service.

The narrative gateway injects an LLM callable matching the protocol:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` identifies which request is being made ("encounter" or
"resolution"). Implementations may use it for logging or routing.

Production code constructs an HttpLLM from settings (see config.py) and hands
it to the NarrativeGateway. Tests use StubLLM (defined in conftest.py)
instead.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — connects to an OpenAI-compatible gateway
# ---------------------------------------------------------------------------

ProviderFormat = Literal["chat", "completions"]


class HttpLLM:
    """Async HTTP client for OpenAI-compatible text-generation gateways.

    Supported formats:
      "chat"         — POST /v1/chat/completions
                       {"model": ..., "messages": [system, user]}
                       Response: {"choices": [{"message": {"content": "..."}}]}
      "completions"  — POST /v1/completions  {"model": ..., "prompt": ...}
                       Response: {"choices": [{"text": "..."}]}

    Args:
        base_url:        Base URL of the gateway, e.g. "https://api.packyapi.com".
        api_key:         Bearer token.
        model:           Model identifier sent with every request.
        provider_format: Wire format to use. Defaults to "chat".
        system_prompt:   Persona sent as the system message ("chat") or
                         prepended to the prompt ("completions").
        timeout:         HTTP timeout in seconds. Defaults to 60.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str = "",
        provider_format: ProviderFormat = "chat",
        system_prompt: str = "",
        timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._format = provider_format
        self._system_prompt = system_prompt
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        """Return (url, body) for the configured format."""
        if self._format == "completions":
            url = f"{self._base_url}/v1/completions"
            text = f"{self._system_prompt}\n\n{prompt}" if self._system_prompt else prompt
            body: dict = {"prompt": text}
        else:
            url = f"{self._base_url}/v1/chat/completions"
            messages = []
            if self._system_prompt:
                messages.append({"role": "system", "content": self._system_prompt})
            messages.append({"role": "user", "content": prompt})
            body = {"messages": messages}
        if self._model:
            body["model"] = self._model
        return url, body

    def _parse_response(self, data: Any) -> str:
        """Extract the completion text from the response body."""
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices[0], dict):
            raise LLMError("Unexpected response format from narrative service")
        first = choices[0]

        if self._format == "completions":
            text = first.get("text")
            if not isinstance(text, str):
                raise LLMError("Unexpected response format from narrative service")
            return text

        message = first.get("message")
        if not isinstance(message, dict):
            raise LLMError("Unexpected response format from narrative service")
        content = message.get("content")
        if isinstance(content, str) and content:
            return content
        # Some gateways return content as a list of parts
        if isinstance(content, list) and content:
            part = content[0]
            if isinstance(part, str):
                return part
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                return part["text"]
        if not content:
            raise LLMError("Empty response from narrative service")
        raise LLMError("Unsupported message format from narrative service")

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._build_request(prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to narrative service at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Narrative service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Narrative service timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Narrative service request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("Narrative service returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# LLMError — raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the narrative service cannot be reached or returns an error."""
