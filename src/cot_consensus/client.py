"""Completion backend for chain-of-thought sampling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from .errors import SampleGenerationFailure

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({408, 409, 425, 429, 500, 502, 503, 504, 520, 522, 523, 524})


class ChatClient(Protocol):
    """The single capability the engine needs: given a prompt, produce text.

    Implementations make exactly one attempt per call; retrying belongs to the
    sample slot that issued the call.
    """

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        ...


def _part_text(part: Any) -> str | None:
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        text = part.get("text") or part.get("content")
        if isinstance(text, str):
            return text
    return None


def completion_text(message: dict[str, Any]) -> str:
    """Reasoning text of a chat message, falling back to the ``reasoning`` field."""

    for key in ("content", "reasoning"):
        value = message.get(key)
        if isinstance(value, list):
            value = "\n".join(t for t in (_part_text(p) for p in value) if t is not None)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return response.text[:300]


@dataclass
class OpenAICompatChatClient:
    """Single-shot client for OpenAI-compatible chat completion APIs (OpenAI, vLLM, TGI, Groq)."""

    base_url: str
    model: str
    api_key: str | None = None
    timeout_sec: int = 120
    extra_body: dict[str, Any] = field(default_factory=dict)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    def build_payload(self, *, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        payload.update(self.extra_body)
        return payload

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = self.build_payload(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        try:
            response = requests.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout_sec)
        except requests.RequestException as exc:
            raise SampleGenerationFailure(f"request to {self.endpoint} failed: {exc}", transient=True) from exc

        status = response.status_code
        if status >= 400:
            raise SampleGenerationFailure(
                f"backend returned {status}: {_error_message(response)}",
                transient=status in RETRYABLE_STATUS,
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise SampleGenerationFailure("backend returned a non-JSON body", transient=True, status_code=status) from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise SampleGenerationFailure("completion has no choices", transient=True, status_code=status)

        text = completion_text(choices[0].get("message") or {})
        if not text:
            raise SampleGenerationFailure("completion text is empty", transient=True, status_code=status)

        logger.debug("completion from %s: %d chars", self.model, len(text))
        return text
