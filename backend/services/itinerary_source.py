"""
Itinerary source: the conversational assistant behind ``/api/chat``.

Given the dialogue history, the model either replies in free text or
calls the ``create_itinerary`` tool with a structured plan. A malformed
plan never fails the turn: the raw output is shown in the chat instead
and the current plan is left untouched.

Groq is used first (native tool calling); Gemini is the fallback and is
asked for a JSON envelope ``{"reply": str, "plan": object | null}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from clients.errors import ExternalAPIError
from clients.gemini_client import GeminiClient
from clients.groq_client import GroqClient
from config.settings import settings
from models.plan import VALID_CATEGORIES, VALID_TIMES, Plan, PlanValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prompts and tool schema
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are a friendly travel planning assistant. Chat with the traveller about \
where they want to go, how many days they have, and what they enjoy.

When you know the destination city and roughly how long the trip is, call \
the create_itinerary tool with a complete day-by-day plan. Use short, \
searchable place names (real sights, restaurants, markets) so they can be \
found on a map. Plan at least 2 days when the traveller gives no length.

If you are only chatting or still need details, reply in plain text and do \
not call the tool. Never mention tools, JSON or internal mechanics.\
"""

ITINERARY_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "create_itinerary",
        "description": "Publish a structured day-by-day itinerary to the map and list.",
        "parameters": {
            "type": "object",
            "properties": {
                "summary": {"type": "string", "description": "One-line overview of the trip."},
                "city": {"type": "string", "description": "Main destination city."},
                "start_date": {"type": "string", "description": "Optional YYYY-MM-DD start date."},
                "days": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "day": {"type": "integer", "minimum": 1},
                            "title": {"type": "string"},
                            "items": {
                                "type": "array",
                                "items": {
                                    "type": "object",
                                    "properties": {
                                        "time": {"type": "string", "enum": list(VALID_TIMES)},
                                        "name": {"type": "string"},
                                        "category": {"type": "string", "enum": list(VALID_CATEGORIES)},
                                        "note": {"type": "string"},
                                    },
                                    "required": ["time", "name", "category"],
                                },
                            },
                        },
                        "required": ["day", "items"],
                    },
                },
            },
            "required": ["summary", "city", "days"],
        },
    },
}

JSON_ENVELOPE_INSTRUCTION = (
    "Respond with a JSON object only: "
    '{"reply": "<text for the chat>", "plan": <itinerary object or null>}. '
    "The itinerary object has the same shape as the create_itinerary tool "
    "arguments: " + json.dumps(ITINERARY_TOOL["function"]["parameters"])
)

MALFORMED_PLAN_NOTICE = "The itinerary could not be parsed; here is the raw content:"


@dataclass
class ChatReply:
    """One assistant turn: text for the chat and an optional new plan."""

    content: str
    plan: Optional[Plan] = None


def default_confirmation(plan: Plan) -> str:
    return plan.summary or (
        f"Planned your {plan.city or 'trip'} itinerary, see the day-by-day list below."
    )


class ItinerarySource:
    """Routes dialogue history to the LLM and extracts a Plan when one is produced."""

    def __init__(
        self,
        groq_client: Optional[GroqClient] = None,
        gemini_client: Optional[GeminiClient] = None,
    ) -> None:
        # Try Groq first, fallback to Gemini
        self.use_groq = False
        self.use_gemini = False
        self.groq_client = groq_client
        self.gemini_client = gemini_client

        if self.groq_client is None and settings.GROQ_API_KEY:
            try:
                self.groq_client = GroqClient()
            except Exception as e:
                logger.warning(f"ItinerarySource: Groq unavailable ({e}), trying Gemini")
        self.use_groq = self.groq_client is not None

        if not self.use_groq and self.gemini_client is None:
            try:
                self.gemini_client = GeminiClient()
            except Exception as e:
                logger.error(f"ItinerarySource: No LLM available! Groq and Gemini both failed: {e}")
                raise ValueError("No LLM available - both Groq and Gemini failed to initialize")
        self.use_gemini = self.gemini_client is not None

        logger.info(
            "ItinerarySource ready (primary=%s)", "groq" if self.use_groq else "gemini",
        )

    @property
    def primary(self) -> str:
        return "groq" if self.use_groq else "gemini"

    async def reply(
        self,
        history: List[Dict[str, str]],
        request_id: Optional[str] = None,
    ) -> ChatReply:
        """
        Produce the assistant's reply for the full dialogue history.

        Args:
            history: Ordered ``{"role", "content"}`` messages (user/assistant).
            request_id: Correlation id for logs.

        Raises:
            ExternalAPIError: When every configured LLM failed.
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT}] + [
            {"role": m["role"], "content": m["content"]}
            for m in history
            if m.get("role") in ("user", "assistant")
        ]

        if self.use_groq:
            loop = asyncio.get_running_loop()
            try:
                result = await loop.run_in_executor(
                    None,
                    lambda: self.groq_client.chat_with_tools(messages, tools=[ITINERARY_TOOL]),
                )
                return self._from_tool_reply(result)
            except ExternalAPIError as e:
                logger.warning(
                    f"Groq failed, trying Gemini: {e}", extra={"request_id": request_id},
                )
                if self.gemini_client is None:
                    try:
                        self.gemini_client = GeminiClient()
                    except ValueError:
                        raise e
                self.use_gemini = True

        raw = await self.gemini_client.chat_with_history(
            messages=messages + [{"role": "user", "content": JSON_ENVELOPE_INSTRUCTION}],
            json_output=True,
            request_id=request_id,
        )
        return self._from_json_envelope(raw)

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _from_tool_reply(result: Dict[str, Any]) -> ChatReply:
        call = next(
            (c for c in result.get("tool_calls", []) if c["name"] == "create_itinerary"),
            None,
        )
        if call is None:
            return ChatReply(content=result.get("content", ""))

        raw_args = call["arguments"]
        try:
            plan = Plan.from_dict(json.loads(raw_args))
        except (json.JSONDecodeError, PlanValidationError) as e:
            logger.warning(f"Malformed itinerary tool arguments: {e}")
            return ChatReply(content=f"{MALFORMED_PLAN_NOTICE}\n{raw_args}")

        return ChatReply(content=default_confirmation(plan), plan=plan)

    @staticmethod
    def _from_json_envelope(raw: str) -> ChatReply:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Gemini reply is not JSON: {e}")
            return ChatReply(content=f"{MALFORMED_PLAN_NOTICE}\n{raw}")

        if not isinstance(data, dict):
            return ChatReply(content=f"{MALFORMED_PLAN_NOTICE}\n{raw}")

        reply_text = str(data.get("reply") or "")
        plan_data = data.get("plan")
        if not plan_data:
            return ChatReply(content=reply_text)

        try:
            plan = Plan.from_dict(plan_data)
        except PlanValidationError as e:
            logger.warning(f"Malformed itinerary in Gemini reply: {e}")
            return ChatReply(content=f"{MALFORMED_PLAN_NOTICE}\n{raw}")

        return ChatReply(content=reply_text or default_confirmation(plan), plan=plan)
