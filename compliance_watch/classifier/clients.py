from __future__ import annotations

from typing import Optional, Protocol

import anthropic
import openai

from compliance_watch.classifier.errors import ClassifierUnavailableError
from compliance_watch.common.enums import ClassifierErrorKind


DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-latest"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.3


class ReasoningClient(Protocol):
    model: str

    def complete(self, system_prompt: str, user_prompt: str) -> str: ...


class DisabledReasoningClient:
    def __init__(self, *, reason: str = "classifier_not_configured", model: str = "disabled") -> None:
        self._reason = reason
        self.model = model

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        raise ClassifierUnavailableError(self._reason)


class AnthropicReasoningClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[anthropic.Anthropic] = None,
    ) -> None:
        self.model = model or DEFAULT_ANTHROPIC_MODEL
        self._client = client or anthropic.Anthropic(api_key=api_key, timeout=timeout_s, max_retries=0)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=TEMPERATURE,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APITimeoutError as exc:
            raise ClassifierUnavailableError(str(exc), kind=ClassifierErrorKind.timeout) from exc
        except anthropic.APIError as exc:
            raise ClassifierUnavailableError(f"Anthropic API error: {exc}") from exc
        return "".join(
            getattr(block, "text", "") for block in response.content
        )


class OpenAIReasoningClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        client: Optional[openai.OpenAI] = None,
    ) -> None:
        self.model = model or DEFAULT_OPENAI_MODEL
        self._client = client or openai.OpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=0,
        )

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=TEMPERATURE,
                max_tokens=MAX_OUTPUT_TOKENS,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as exc:
            raise ClassifierUnavailableError(str(exc), kind=ClassifierErrorKind.timeout) from exc
        except openai.APIError as exc:
            raise ClassifierUnavailableError(f"OpenAI API error: {exc}") from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
