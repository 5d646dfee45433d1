"""
Google Gemini client, the fallback model behind the chat assistant.

Gemini has no tool call here; the assistant is asked for a JSON envelope
instead, so ``json_output=True`` switches the response MIME type to
``application/json``.

Usage:
    from clients.gemini_client import GeminiClient

    client = GeminiClient()
    raw = await client.chat_with_history(history, json_output=True)
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from google import genai
from google.genai import types

from clients.errors import ExternalAPIError
from config.settings import settings

logger = logging.getLogger(__name__)


def to_gemini_contents(
    messages: List[Dict[str, str]],
) -> Tuple[Optional[str], List[types.Content]]:
    """Split chat messages into a system instruction and Gemini turns.

    Every ``system`` message is folded into the instruction; ``assistant``
    turns become ``model`` turns.
    """
    system_parts = []
    contents = []
    for msg in messages:
        role = msg["role"]
        if role == "system":
            system_parts.append(msg["content"])
            continue
        contents.append(types.Content(
            role="model" if role == "assistant" else "user",
            parts=[types.Part(text=msg["content"])],
        ))
    return ("\n\n".join(system_parts) or None), contents


class GeminiClient:
    """Async wrapper for Gemini chat with bounded retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key or settings.GEMINI_KEY
        if not self.api_key:
            raise ValueError("Gemini API key required: set GEMINI_KEY in .env")

        self.model_name = model_name or settings.GEMINI_MODEL
        self.max_retries = max(1, max_retries if max_retries is not None else settings.GEMINI_MAX_RETRIES)
        self.timeout = timeout if timeout is not None else settings.GEMINI_TIMEOUT
        self.client = genai.Client(api_key=self.api_key)

    async def chat_with_history(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_output: bool = False,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Send the conversation to Gemini and return the raw reply text.

        Raises:
            ExternalAPIError: If every attempt failed or timed out.
        """
        system_instruction, contents = to_gemini_contents(messages)
        config = types.GenerateContentConfig(
            temperature=temperature if temperature is not None else settings.GEMINI_TEMPERATURE,
            max_output_tokens=max_tokens or settings.GEMINI_MAX_TOKENS,
            system_instruction=system_instruction,
            response_mime_type="application/json" if json_output else None,
        )

        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            try:
                text = await asyncio.wait_for(
                    self._generate(contents, config), timeout=self.timeout,
                )
                logger.info(
                    "Gemini reply received",
                    extra={"request_id": request_id, "attempt": attempt, "response_length": len(text)},
                )
                return text
            except asyncio.TimeoutError:
                last_error = f"timeout after {self.timeout}s"
            except Exception as exc:
                last_error = f"{type(exc).__name__}: {exc}"

            logger.warning(
                "Gemini attempt %d/%d failed: %s", attempt, self.max_retries, last_error,
                extra={"request_id": request_id},
            )
            if attempt < self.max_retries:
                await asyncio.sleep(attempt)

        raise ExternalAPIError(service="Gemini", error=last_error, retry_count=self.max_retries)

    async def _generate(self, contents: List[types.Content], config: types.GenerateContentConfig) -> str:
        # google-genai's generate_content is blocking
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.client.models.generate_content(
                model=self.model_name, contents=contents, config=config,
            ),
        )
        return response.text or ""
