"""Calls into locally hosted models served by Ollama.

Content generation can run fully offline by pointing ``LLM_PROVIDER`` at
``ollama``. The HTTP exchange is blocking, so it runs in a worker thread to
keep the game loop responsive.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any
from urllib import error, request

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
_CHAT_ENDPOINT = "/api/chat"


class LocalLLMError(RuntimeError):
    """Raised when a local model invocation fails."""


def _post_chat(payload: dict[str, Any], base_url: str, timeout: float | None) -> str:
    """Send one non-streaming chat request and return the assistant text."""

    url = f"{base_url.rstrip('/')}{_CHAT_ENDPOINT}"
    req = request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalLLMError(
            f"Ollama chat request failed with status {exc.code}: {body or exc.reason}"
        ) from exc
    except error.URLError as exc:
        raise LocalLLMError(f"Could not reach Ollama at {url}: {exc.reason}") from exc

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocalLLMError("Ollama returned non-JSON response.") from exc

    content = (parsed.get("message") or {}).get("content")
    if not content:
        raise LocalLLMError("Ollama response did not include assistant content.")
    return content


async def call_ollama_chat(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float | None = None,
) -> str:
    """Invoke a local Ollama model in JSON mode and return its raw reply."""

    user_prompt = user_prompt.strip()
    if not user_prompt:
        raise LocalLLMError("Cannot call Ollama with an empty user prompt.")

    resolved_base = base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL

    messages: list[dict[str, str]] = []
    if system_prompt.strip():
        messages.append({"role": "system", "content": system_prompt.strip()})
    messages.append({"role": "user", "content": user_prompt})

    payload = {
        "model": llm_model,
        "messages": messages,
        "format": "json",
        "stream": False,
    }
    return await asyncio.to_thread(_post_chat, payload, resolved_base, timeout)


__all__ = ["LocalLLMError", "call_ollama_chat", "DEFAULT_OLLAMA_BASE_URL"]
