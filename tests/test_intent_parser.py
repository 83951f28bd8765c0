import json

import httpx
import pytest

from app.core.errors import InvalidRequestError
from app.core.settings import LLMSettings
from app.services.intent_parser import BookingIntent, IntentParser, extract_json_object

EVENTS = ["Spring Concert", "Tiger Band Night"]


def _parser_returning(model_output: str, captured: list) -> IntentParser:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"model": "llama3.1:latest", "response": model_output})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IntentParser(LLMSettings(LLM_BASE_URL="http://llm.test"), client=client)


async def test_parses_booking_proposal() -> None:
    captured: list = []
    parser = _parser_returning(
        'Sure! {"intent": "propose_booking", "event": "spring concert", "quantity": 2}',
        captured,
    )

    intent = await parser.parse("two tickets to the spring concert", EVENTS)

    assert intent == BookingIntent(intent="propose_booking", event="Spring Concert", quantity=2)
    request = captured[0]
    assert str(request.url) == "http://llm.test/api/generate"
    body = json.loads(request.content)
    assert body["stream"] is False
    assert body["model"] == "llama3.1:latest"
    assert "- Tiger Band Night" in body["prompt"]


async def test_accepts_tickets_key_and_cleans_comments() -> None:
    output = """
    {
      "intent": "propose_booking", // the user wants to book
      "event": "Tiger Band Night",
      "tickets": "3",
    }
    """
    intent = await _parser_returning(output, []).parse("3 for band night", EVENTS)
    assert intent.quantity == 3
    assert intent.event == "Tiger Band Night"


async def test_missing_quantity_is_not_defaulted() -> None:
    parser = _parser_returning('{"intent": "propose_booking", "event": "Spring Concert"}', [])
    intent = await parser.parse("tickets for the spring concert", EVENTS)
    assert intent.quantity is None


async def test_unknown_intent_becomes_other() -> None:
    parser = _parser_returning('{"intent": "cancel_everything", "quantity": 0}', [])
    intent = await parser.parse("cancel it all", EVENTS)
    assert intent == BookingIntent(intent="other", event=None, quantity=None)


async def test_unparseable_output_falls_back() -> None:
    intent = await _parser_returning("I cannot help with that.", []).parse("hello", EVENTS)
    assert intent == BookingIntent(intent="other")


async def test_upstream_error_falls_back() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    parser = IntentParser(LLMSettings(), client=client)

    assert await parser.parse("show me events", EVENTS) == BookingIntent(intent="other")


async def test_empty_text_is_rejected() -> None:
    with pytest.raises(InvalidRequestError):
        await _parser_returning("{}", []).parse("   ", EVENTS)


def test_extract_json_object_ignores_non_objects() -> None:
    assert extract_json_object("[1, 2, 3]") is None
    assert extract_json_object('prefix {"intent": "show_events",} suffix') == {
        "intent": "show_events"
    }


def test_extract_json_object_returns_the_first_of_several() -> None:
    output = 'First: {"intent": "show_events"} and then {"intent": "other"}'
    assert extract_json_object(output) == {"intent": "show_events"}


def test_extract_json_object_skips_a_brace_that_is_not_json() -> None:
    output = 'Use {curly} braces: {"intent": "propose_booking", "quantity": 1}'
    assert extract_json_object(output) == {"intent": "propose_booking", "quantity": 1}


async def test_non_ascii_digit_quantity_is_dropped() -> None:
    parser = _parser_returning(
        '{"intent": "propose_booking", "event": "Spring Concert", "quantity": "²"}', []
    )
    intent = await parser.parse("tickets squared", EVENTS)
    assert intent == BookingIntent(intent="propose_booking", event="Spring Concert", quantity=None)
