"""
llm_client.py — Mistral async completion layer for InsurAI.

One LLMClient is created in main.py lifespan and stored on app.state.llm
(singleton for HTTP connection pool reuse). Both the ingestion pipeline and
the chat advisor call complete(); neither talks to the SDK directly.

Contract:
  - single attempt per call: no retry, no backoff (rate limiting is the
    provider's business)
  - any SDK / network / auth / quota failure surfaces as LLMRequestFailed
  - mock=True marks the deterministic offline mode; callers check `mock` and
    use insurai.ingestion.mock_llm / insurai.chat.advisor instead of calling
    complete()

No HTTPException anywhere — this is pure service logic, HTTP layer is routes.py.
"""
import logging
from typing import Any, Optional

from mistralai import Mistral

from insurai.errors import LLMRequestFailed

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mistral API constants
# ---------------------------------------------------------------------------

DEFAULT_MODEL = "mistral-small-latest"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_TOKENS = 8192


class LLMClient:
    """Thin wrapper over the Mistral chat completion endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        mock: bool = False,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.mock = mock
        if client is not None:
            self._client = client
        elif mock:
            self._client = None
        else:
            self._client = Mistral(api_key=api_key)
        logger.info("LLM client initialized model=%s mock=%s", model, mock)

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[list[dict[str, str]]] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """
        Send one prompt (optionally after a system prompt and prior turns)
        and return the raw completion text.

        Raises:
            LLMRequestFailed: on any failure talking to the endpoint, or when
                called on a client in mock mode.
        """
        if self._client is None:
            raise LLMRequestFailed("LLM client is in mock mode; no remote endpoint configured")

        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        logger.info(
            "Calling Mistral API model=%s prompt_len=%d turns=%d",
            self.model, len(prompt), len(messages),
        )
        try:
            response = await self._client.chat.complete_async(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            text = response.choices[0].message.content or ""
        except Exception as exc:
            logger.error("Mistral request failed: %s", exc)
            raise LLMRequestFailed(f"LLM request failed: {exc}") from exc

        if not isinstance(text, str):
            # Multi-part content chunks — keep only the text parts
            text = "".join(getattr(part, "text", "") or "" for part in text)

        logger.info("Mistral response received len=%d", len(text))
        return text
