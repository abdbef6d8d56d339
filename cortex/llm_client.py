"""OpenRouter-backed generator session."""
from __future__ import annotations

import time
from typing import Any, Callable, Protocol

from cortex.config import settings
from cortex.services import logger as log_service
from cortex.services.env_safety import sanitize_ssl_keylogfile
from cortex.services.prompt_store import render_prompt


class GeneratorSession(Protocol):
    async def respond(self, prompt: str, temperature: float) -> str: ...

    def is_busy(self) -> bool: ...


SessionFactory = Callable[[], "GeneratorSession | None"]


def get_client() -> Any:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    sanitize_ssl_keylogfile()
    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


class ChatSession:
    """A stateful conversation with the remote model.

    Every exchange is kept and replayed on the next call, so the model sees
    the whole session; discarding the object discards that context.
    """

    def __init__(
        self,
        *,
        instructions: str | None = None,
        model: str | None = None,
        client: Any | None = None,
        max_tokens: int = 2048,
    ):
        self.instructions = instructions if instructions is not None else render_prompt("session.system_instructions")
        self.model = model or get_model()
        self.max_tokens = max_tokens
        self._client = client
        self._history: list[dict[str, str]] = []
        self._busy = False

    @property
    def history(self) -> list[dict[str, str]]:
        return list(self._history)

    def is_busy(self) -> bool:
        return self._busy

    def _client_or_default(self) -> Any:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def respond(self, prompt: str, temperature: float) -> str:
        if self._busy:
            raise RuntimeError("Session is already responding")

        messages = [{"role": "system", "content": self.instructions}, *self._history]
        messages.append({"role": "user", "content": prompt})

        self._busy = True
        t0 = time.monotonic()
        try:
            response = await self._client_or_default().chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=temperature,
            )
        except Exception as exc:
            log_service.log_llm_call(
                model=self.model,
                caller="chat_session",
                prompt_chars=len(prompt),
                temperature=temperature,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise
        finally:
            self._busy = False

        text = response.choices[0].message.content or ""
        log_service.log_llm_call(
            model=self.model,
            caller="chat_session",
            prompt_chars=len(prompt),
            reply_chars=len(text),
            temperature=temperature,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        self._history.append({"role": "user", "content": prompt})
        self._history.append({"role": "assistant", "content": text})
        return text


def default_session_factory() -> ChatSession | None:
    """Build a session, or None when no model is configured."""
    if not settings.generator_configured:
        return None
    return ChatSession()
