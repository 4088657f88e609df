from __future__ import annotations

import base64
import http.client
import json
import os
from abc import ABC, abstractmethod
from typing import Any
from urllib import error, request

from google import genai
from google.genai import types as genai_types

from selfheal.core.exceptions import CompletionError

IMAGE_MEDIA_TYPE = "image/png"


class CompletionClient(ABC):
    """Provider-neutral text completion with an optional screenshot."""

    provider_name = "unknown"
    model_map: dict[str, str] = {}
    model_env_var = ""

    def __init__(self, api_key: str, model: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or (os.getenv(self.model_env_var) if self.model_env_var else None)

    def model_for(self, model_tier: str) -> str:
        if self.model:
            return self.model
        try:
            return self.model_map[model_tier]
        except KeyError as exc:
            raise CompletionError(f"Unknown model tier for {self.provider_name}: {model_tier}") from exc

    @abstractmethod
    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        raise NotImplementedError


class OpenAICompletionClient(CompletionClient):
    provider_name = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"
    model_env_var = "OPENAI_MODEL"
    model_map = {
        "fast": "gpt-4o-mini",
        "balanced": "gpt-4o",
        "accurate": "gpt-4.1",
    }

    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image is not None:
            encoded = base64.b64encode(image).decode("ascii")
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{IMAGE_MEDIA_TYPE};base64,{encoded}"},
                }
            )
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": content})
        body = {
            "model": self.model_for(model_tier),
            "temperature": 0,
            "max_tokens": max_output_tokens,
            "messages": messages,
        }
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            return response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError("OpenAI returned an unexpected response shape") from exc


class AnthropicCompletionClient(CompletionClient):
    provider_name = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"
    model_env_var = "ANTHROPIC_MODEL"
    model_map = {
        "fast": "claude-3-haiku-20240307",
        "balanced": "claude-sonnet-4-5-20250929",
        "accurate": "claude-opus-4-5-20251101",
    }

    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        content: list[dict[str, Any]] = []
        if image is not None:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": IMAGE_MEDIA_TYPE,
                        "data": base64.b64encode(image).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})
        body: dict[str, Any] = {
            "model": self.model_for(model_tier),
            "max_tokens": max_output_tokens,
            "temperature": 0,
            "messages": [
                {"role": "user", "content": content},
            ],
        }
        if system_prompt:
            body["system"] = system_prompt
        response = _post_json(
            self.endpoint,
            body,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "Content-Type": "application/json",
            },
        )
        blocks = response.get("content") or []
        text_parts = [block.get("text", "") for block in blocks if isinstance(block, dict) and block.get("type") == "text"]
        if not text_parts:
            raise CompletionError("Anthropic returned no text content")
        return "".join(text_parts)


class GeminiCompletionClient(CompletionClient):
    provider_name = "gemini"
    model_env_var = "GEMINI_MODEL"
    model_map = {
        "fast": "gemini-2.5-flash-lite",
        "balanced": "gemini-2.5-flash",
        "accurate": "gemini-2.5-pro",
    }

    def __init__(self, api_key: str, model: str | None = None) -> None:
        super().__init__(api_key, model)
        self._client = genai.Client(api_key=api_key)

    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        contents: list[Any] = []
        if image is not None:
            contents.append(genai_types.Part.from_bytes(data=image, mime_type=IMAGE_MEDIA_TYPE))
        contents.append(prompt)
        model = self.model_for(model_tier)
        try:
            response = self._client.models.generate_content(
                model=model,
                contents=contents,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=0,
                    max_output_tokens=max_output_tokens,
                ),
            )
        except Exception as exc:  # noqa: BLE001
            raise CompletionError(f"Gemini request failed ({model}): {exc}") from exc
        content = (response.text or "").strip()
        if not content:
            raise CompletionError("Gemini returned an empty response")
        return content


_PROVIDERS: dict[str, tuple[type[CompletionClient], str]] = {
    "openai": (OpenAICompletionClient, "OPENAI_API_KEY"),
    "anthropic": (AnthropicCompletionClient, "ANTHROPIC_API_KEY"),
    "gemini": (GeminiCompletionClient, "GEMINI_API_KEY"),
}


def create_completion_client(provider: str | None = None) -> CompletionClient:
    name = (provider or os.getenv("LLM_PROVIDER", "openai")).lower()
    if name not in _PROVIDERS:
        raise CompletionError(f"Unsupported LLM provider: {name}")
    client_class, key_var = _PROVIDERS[name]
    api_key = os.getenv(key_var)
    if not api_key:
        raise CompletionError(f"{key_var} is required when LLM_PROVIDER={name}")
    return client_class(api_key)


class LazyCompletionClient:
    """Defers provider client construction until a repair is actually needed."""

    def __init__(self, provider: str | None = None) -> None:
        self.provider_name = (provider or os.getenv("LLM_PROVIDER", "openai")).lower()
        self._client: CompletionClient | None = None

    def complete(
        self,
        prompt: str,
        image: bytes | None = None,
        *,
        system_prompt: str | None = None,
        model_tier: str = "fast",
        max_output_tokens: int = 1024,
    ) -> str:
        if self._client is None:
            self._client = create_completion_client(self.provider_name)
        return self._client.complete(
            prompt,
            image,
            system_prompt=system_prompt,
            model_tier=model_tier,
            max_output_tokens=max_output_tokens,
        )


def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
    encoded = json.dumps(payload).encode("utf-8")
    req = request.Request(url, data=encoded, headers=headers, method="POST")
    try:
        with request.urlopen(req, timeout=30) as response:
            raw = response.read()
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace")
        raise CompletionError(f"LLM request failed with status {exc.code}: {detail}") from exc
    except error.URLError as exc:
        raise CompletionError(f"LLM request could not be completed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise CompletionError("LLM request timed out") from exc
    except (OSError, http.client.HTTPException) as exc:
        raise CompletionError(f"LLM response could not be read: {exc!r}") from exc
    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CompletionError("LLM response was not valid JSON") from exc
    if not isinstance(body, dict):
        raise CompletionError(f"LLM response was a JSON {type(body).__name__}, expected an object")
    return body
