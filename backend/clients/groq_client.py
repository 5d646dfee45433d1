"""
Client for Groq API using OpenAI-compatible interface.
"""
import logging
from typing import Any, Dict, List, Optional

from groq import Groq

from clients.errors import ExternalAPIError
from config.settings import settings

logger = logging.getLogger(__name__)


class GroqClient:
    """Client for interacting with Groq API."""

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initialize Groq client.

        Args:
            api_key: Optional API key. If not provided, uses settings.GROQ_API_KEY
            timeout: Request timeout in seconds. Defaults to settings.GROQ_TIMEOUT
        """
        self.api_key = api_key or settings.GROQ_API_KEY
        self.model = settings.GROQ_MODEL
        self.timeout = timeout if timeout is not None else settings.GROQ_TIMEOUT

        if not self.api_key:
            raise ValueError("Groq API key is required")

        logger.info("GroqClient initialized with model %s (timeout %ss)", self.model, self.timeout)

        # Initialize Groq client with timeout
        self.client = Groq(api_key=self.api_key, timeout=self.timeout)

    def chat_with_tools(
        self,
        messages: List[Dict[str, str]],
        tools: List[Dict[str, Any]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Send a full conversation history plus tool schemas and return the reply.

        The model decides whether to answer in free text or call a tool.

        Args:
            messages: Ordered list of ``{"role": ..., "content": ...}`` dicts
                      (system / user / assistant).
            tools: OpenAI-style ``{"type": "function", "function": {...}}`` list.
            temperature: Controls randomness (0.0-2.0).
            max_tokens: Maximum tokens in the response.

        Returns:
            ``{"content": str, "tool_calls": [{"name": str, "arguments": str}]}``
            where ``arguments`` is the raw JSON string produced by the model.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools,
                tool_choice="auto",
                temperature=temperature if temperature is not None else settings.GROQ_TEMPERATURE,
                max_tokens=max_tokens or settings.GROQ_MAX_TOKENS,
            )
        except Exception as e:
            raise ExternalAPIError(service="Groq", error=str(e))

        message = response.choices[0].message
        tool_calls = [
            {"name": tc.function.name, "arguments": tc.function.arguments or ""}
            for tc in (message.tool_calls or [])
        ]
        return {"content": message.content or "", "tool_calls": tool_calls}
