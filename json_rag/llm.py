#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from typing import Any, Dict, List, Optional

import openai
from llama_index.core.llms import (
    CompletionResponse,
    CompletionResponseGen,
    CustomLLM,
    LLMMetadata,
)
from openai import OpenAI

from .config import LLMConfig
from .errors import UpstreamError, UpstreamUnavailable


class OpenAIChatLLM(CustomLLM):
    """Адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat API (Ollama /v1).

    Реализует возможность generate(prompt): complete возвращает текст модели
    без изменений, stream_complete - нарастающий ответ частями. Ошибки
    клиента OpenAI переводятся в UpstreamUnavailable/UpstreamError.
    """
    def __init__(
        self,
        base_url: str,
        api_key: str,
        model_name: str,
        temperature: float = 0.3,
        top_p: float = 0.9,
        max_tokens: int = 800,
        system_prompt: Optional[str] = None,
        timeout_s: float = 120.0,
        client: Optional[OpenAI] = None,
    ) -> None:
        super().__init__()
        self._client = client or OpenAI(base_url=base_url, api_key=api_key, timeout=timeout_s, max_retries=0)
        self._model = model_name
        self._temperature = float(temperature)
        self._top_p = float(top_p)
        self._max_tokens = int(max_tokens)
        self._system_prompt = system_prompt

    @classmethod
    def from_config(cls, cfg: LLMConfig) -> "OpenAIChatLLM":
        return cls(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            model_name=cfg.model_name,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            max_tokens=cfg.max_tokens,
            system_prompt=cfg.system_prompt,
            timeout_s=cfg.timeout_s,
        )

    @property
    def metadata(self) -> LLMMetadata:
        return LLMMetadata(
            model_name=f"openai-compat::{self._model}",
            num_output=self._max_tokens,
        )

    def _make_messages(self, user_prompt: str) -> List[Dict[str, str]]:
        """Формирует список сообщений для Chat API; system - только если задан."""
        messages = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def _create(self, prompt: str, stream: bool = False) -> Any:
        try:
            return self._client.chat.completions.create(
                model=self._model,
                messages=self._make_messages(prompt),
                temperature=self._temperature,
                top_p=self._top_p,
                max_tokens=self._max_tokens,
                stream=stream,
            )
        except openai.APIConnectionError as exc:
            raise UpstreamUnavailable(f"Generation service unreachable: {exc}") from exc
        except openai.APIStatusError as exc:
            raise UpstreamError(f"Generation service error: {exc.message}", status_code=exc.status_code) from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Generation service error: {exc}") from exc

    def complete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponse:
        """Синхронное получение единого текста ответа для переданного промпта."""
        resp = self._create(prompt)
        if not resp.choices:
            raise UpstreamError("Generation service returned no choices")
        return CompletionResponse(text=resp.choices[0].message.content or "")

    def stream_complete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponseGen:
        """Потоковая генерация: возвращает нарастающий ответ частями."""
        stream = self._create(prompt, stream=True)

        buffer = []
        for event in stream:
            delta = event.choices[0].delta.content if event.choices else None
            if delta:
                buffer.append(delta)
                yield CompletionResponse(text="".join(buffer), delta=delta)
