import asyncio

import httpx
import pytest

from app.crud import event as event_crud
from app.services.intent_parser import IntentParser

API = "/api/v1"


async def _create_event(client, auth_headers, **overrides):
    payload = {"name": "Spring Concert", "date": "2030-04-01", "ticketsAvailable": 5}
    payload.update(overrides)
    return await client.post(
        f"{API}/admin/events", json=payload, headers=auth_headers(is_superuser=True)
    )


async def _tickets(app, event_id: int) -> int:
    async with app.state.db_manager.get_session() as session:
        event = await event_crud.get_event(session, event_id)
        return event.tickets_available


async def test_admin_creates_and_lists_events(client, auth_headers) -> None:
    response = await _create_event(client, auth_headers)
    assert response.status_code == 201
    created = response.json()
    assert created == {
        "id": created["id"],
        "name": "Spring Concert",
        "date": "2030-04-01",
        "ticketsAvailable": 5,
    }

    listing = await client.get(f"{API}/events")
    assert listing.status_code == 200
    assert listing.json() == [created]

    single = await client.get(f"{API}/events/{created['id']}")
    assert single.json() == created


async def test_negative_inventory_is_rejected_without_a_row(client, auth_headers) -> None:
    response = await _create_event(client, auth_headers, ticketsAvailable=-1)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    listing = await client.get(f"{API}/events")
    assert listing.json() == []


async def test_admin_routes_require_superuser(client, auth_headers) -> None:
    payload = {"name": "Gala", "date": "2030-01-01", "ticketsAvailable": 1}

    anonymous = await client.post(f"{API}/admin/events", json=payload)
    assert anonymous.status_code == 401
    assert anonymous.headers["WWW-Authenticate"] == "Bearer"

    regular = await client.post(f"{API}/admin/events", json=payload, headers=auth_headers())
    assert regular.status_code == 403


async def test_admin_update(client, auth_headers) -> None:
    created = (await _create_event(client, auth_headers)).json()
    admin = auth_headers(is_superuser=True)

    response = await client.put(
        f"{API}/admin/events/{created['id']}",
        json={"name": "Moved Concert", "date": "2030-06-01", "ticketsAvailable": 9},
        headers=admin,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Moved Concert"

    missing = await client.put(
        f"{API}/admin/events/999",
        json={"name": "X", "date": "2030-06-01", "ticketsAvailable": 1},
        headers=admin,
    )
    assert missing.status_code == 404


async def test_purchase_status_codes(app, client, auth_headers) -> None:
    event_id = (await _create_event(client, auth_headers, ticketsAvailable=2)).json()["id"]
    url = f"{API}/events/{event_id}/purchase"

    ok = await client.post(url, json={"quantity": 2}, headers=auth_headers())
    assert ok.status_code == 200
    assert ok.json() == {"eventId": event_id, "purchased": 2, "remainingTickets": 0}

    sold_out = await client.post(url, json={"quantity": 1}, headers=auth_headers())
    assert sold_out.status_code == 409
    assert sold_out.json()["detail"]["code"] == "INSUFFICIENT_INVENTORY"

    unauthenticated = await client.post(url, json={"quantity": 1})
    assert unauthenticated.status_code == 401

    bad_token = await client.post(
        url, json={"quantity": 1}, headers={"Authorization": "Bearer garbage"}
    )
    assert bad_token.status_code == 401

    invalid = await client.post(url, json={"quantity": 0}, headers=auth_headers())
    assert invalid.status_code == 400

    missing_body = await client.post(url, headers=auth_headers())
    assert missing_body.status_code == 400

    unknown = await client.post(
        f"{API}/events/9999/purchase", json={"quantity": 1}, headers=auth_headers()
    )
    assert unknown.status_code == 404

    assert await _tickets(app, event_id) == 0


async def test_concurrent_http_purchases_for_last_ticket(client, auth_headers) -> None:
    event_id = (await _create_event(client, auth_headers, ticketsAvailable=1)).json()["id"]
    url = f"{API}/events/{event_id}/purchase"

    responses = await asyncio.gather(
        client.post(url, json={"quantity": 1}, headers=auth_headers(subject_id=1)),
        client.post(url, json={"quantity": 1}, headers=auth_headers(subject_id=2)),
    )

    codes = sorted(r.status_code for r in responses)
    assert codes == [200, 409]
    winner = next(r for r in responses if r.status_code == 200)
    assert winner.json()["remainingTickets"] == 0


async def test_register_login_cookie_purchase_logout(app, client, auth_headers) -> None:
    event_id = (await _create_event(client, auth_headers, ticketsAvailable=3)).json()["id"]

    registered = await client.post(
        f"{API}/auth/register", json={"email": "Fan@Example.com", "password": "tigerpaw1"}
    )
    assert registered.status_code == 201
    assert registered.json()["email"] == "fan@example.com"

    duplicate = await client.post(
        f"{API}/auth/register", json={"email": "fan@example.com", "password": "tigerpaw1"}
    )
    assert duplicate.status_code == 409

    wrong = await client.post(
        f"{API}/auth/login", json={"email": "fan@example.com", "password": "nope-nope"}
    )
    assert wrong.status_code == 401

    login = await client.post(
        f"{API}/auth/login", json={"email": "fan@example.com", "password": "tigerpaw1"}
    )
    assert login.status_code == 200
    assert login.json()["tokenType"] == "bearer"
    assert "token" in login.cookies

    token = login.json()["accessToken"]
    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "fan@example.com"

    # Cookie-only purchase
    client.cookies.set("token", token)
    purchase = await client.post(f"{API}/events/{event_id}/purchase", json={"quantity": 1})
    assert purchase.status_code == 200
    assert purchase.json()["remainingTickets"] == 2

    logout = await client.post(f"{API}/auth/logout")
    assert logout.status_code == 200


async def test_short_password_is_rejected(client) -> None:
    response = await client.post(
        f"{API}/auth/register", json={"email": "short@example.com", "password": "abc"}
    )
    assert response.status_code == 400


async def test_llm_confirm_goes_through_the_coordinator(app, client, auth_headers) -> None:
    event_id = (await _create_event(client, auth_headers, name="Film Night")).json()["id"]

    confirmed = await client.post(
        f"{API}/llm/confirm",
        json={"eventName": "film night", "quantity": 2},
        headers=auth_headers(),
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["remainingTickets"] == 3

    unresolved = await client.post(
        f"{API}/llm/confirm",
        json={"eventName": "Unknown Event", "quantity": 1},
        headers=auth_headers(),
    )
    assert unresolved.status_code == 422
    assert unresolved.json()["detail"]["code"] == "BOOKING_UNRESOLVED"

    no_quantity = await client.post(
        f"{API}/llm/confirm", json={"eventId": event_id}, headers=auth_headers()
    )
    assert no_quantity.status_code == 400

    assert await _tickets(app, event_id) == 3


async def test_llm_parse_uses_catalog_names(app, client, auth_headers) -> None:
    await _create_event(client, auth_headers, name="Film Night")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"response": '{"intent": "propose_booking", "event": "film night", "quantity": 2}'},
        )

    app.state.intent_parser = IntentParser(
        app.state.settings.llm,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )

    response = await client.post(f"{API}/llm/parse", json={"text": "2 for film night"})
    assert response.status_code == 200
    assert response.json() == {"intent": "propose_booking", "event": "Film Night", "quantity": 2}


@pytest.mark.parametrize("path", ["/health", "/metrics"])  # type: ignore[misc]
async def test_operational_endpoints(client, path) -> None:
    response = await client.get(f"{API}{path}")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
