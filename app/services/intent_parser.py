"""
Booking intent parser backed by an Ollama-compatible ``/api/generate`` endpoint.

The parser only proposes. Nothing it returns is acted on until a caller
confirms the proposal through the booking relay.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.core.errors import InvalidRequestError
from app.core.settings import LLMSettings
from app.services.booking_relay import normalize_event_name

logger = logging.getLogger(__name__)

INTENTS = ("propose_booking", "show_events", "other")

PROMPT_TEMPLATE = """
You are a natural language parser for a ticket booking assistant.

Available events:
{events}

Extract the user's intent ("propose_booking", "show_events", or "other"),
the event name (if any) and the number of tickets (if stated).

Respond with only JSON, for example:
{{
  "intent": "propose_booking",
  "event": "Spring Concert",
  "quantity": 2
}}

User: {text}
"""

_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


@dataclass(frozen=True)
class BookingIntent:
    intent: str
    event: Optional[str] = None
    quantity: Optional[int] = None


FALLBACK_INTENT = BookingIntent(intent="other")


def extract_json_object(raw: str) -> Optional[Dict[str, Any]]:
    """Pull the first JSON object out of free-form model output."""
    cleaned = _TRAILING_COMMA.sub(r"\1", _LINE_COMMENT.sub("", raw)).strip()
    decoder = json.JSONDecoder()
    start = cleaned.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        start = cleaned.find("{", start + 1)
    return None


def _coerce_quantity(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if isinstance(value, int) and value > 0:
        return value
    return None


def _coerce_event(value: Any, event_names: List[str]) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    wanted = normalize_event_name(value)
    for name in event_names:
        if normalize_event_name(name) == wanted:
            return name
    return value.strip()


class IntentParser:
    def __init__(
        self, settings: LLMSettings, client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self._base_url = settings.LLM_BASE_URL.rstrip("/")
        self._model = settings.LLM_MODEL
        self._timeout = settings.LLM_TIMEOUT_SECONDS
        self._client = client

    async def parse(self, text: str, event_names: List[str]) -> BookingIntent:
        if not text or not text.strip():
            raise InvalidRequestError("Text to parse is required")

        prompt = PROMPT_TEMPLATE.format(
            events="\n".join(f"- {name}" for name in event_names), text=text.strip()
        )
        try:
            raw = await self._generate(prompt)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Intent parser upstream failed: {e}")
            return FALLBACK_INTENT

        parsed = extract_json_object(raw)
        if parsed is None:
            logger.warning("No JSON object in intent parser output", extra={"raw": raw[:500]})
            return FALLBACK_INTENT

        intent = parsed.get("intent")
        if intent not in INTENTS:
            intent = "other"
        quantity = parsed.get("quantity", parsed.get("tickets"))
        return BookingIntent(
            intent=intent,
            event=_coerce_event(parsed.get("event"), event_names),
            quantity=_coerce_quantity(quantity),
        )

    async def _generate(self, prompt: str) -> str:
        payload = {"model": self._model, "prompt": prompt, "stream": False}
        url = f"{self._base_url}/api/generate"
        if self._client is not None:
            response = await self._client.post(url, json=payload, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload)
        response.raise_for_status()
        body = response.json()
        return str(body.get("response") or "") if isinstance(body, dict) else ""
