"""
Purpose: Thin client wrapper around OpenAI chat completions.
One place for auth, model options and error normalization.

Policy: one request per turn, no retries. Transport/auth/API failures are
mapped onto civic_chat.errors; an empty completion is not an error and
comes back as the fallback placeholder.

Testing: Swap self.client for a fake exposing chat.completions.create.
"""

from __future__ import annotations
import logging
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from ..config import DEFAULT_MODEL, EMPTY_REPLY_PLACEHOLDER
from ..errors import AuthError, CredentialError, GatewayError, TransportError
from ..models import LLMSettings

logger = logging.getLogger(__name__)


class OpenAILLMClient:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        if not self.api_key:
            raise CredentialError("Missing OPENAI_API_KEY")
        self.model = model
        # one request per turn; the SDK would otherwise retry twice
        self.client = AsyncOpenAI(
            api_key=self.api_key, max_retries=0, http_client=http_client
        )

    def settings(self, max_tokens: int, temperature: float) -> LLMSettings:
        return LLMSettings(
            model=self.model, temperature=temperature, max_tokens=max_tokens
        )

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        settings = self.settings(max_tokens, temperature)
        payload = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        try:
            cc = await self.client.chat.completions.create(
                model=settings.model,
                messages=payload,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
            )
        except openai.AuthenticationError as e:
            raise AuthError(str(e)) from e
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise TransportError(str(e)) from e
        except openai.OpenAIError as e:
            raise GatewayError(str(e)) from e

        text = _first_choice_text(cc)
        usage = getattr(cc, "usage", None)
        logger.debug(
            "Completion received (model=%s, tokens_in=%s, tokens_out=%s)",
            getattr(cc, "model", settings.model),
            getattr(usage, "prompt_tokens", 0) if usage else 0,
            getattr(usage, "completion_tokens", 0) if usage else 0,
        )
        return text or EMPTY_REPLY_PLACEHOLDER


def _first_choice_text(cc) -> Optional[str]:
    choices = getattr(cc, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return content.strip() if isinstance(content, str) else None
