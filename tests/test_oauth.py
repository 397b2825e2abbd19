from __future__ import annotations

from urllib.parse import parse_qs

import pytest

from joiner.oauth import ExchangeFailure


@pytest.mark.asyncio
async def test_exchange_returns_bound_user(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.token_response = (200, {"access_token": "at-1", "token_type": "Bearer", "scope": "identify guilds.join"})
    fake_discord.identity_response = (200, {"id": "42", "username": "alice", "global_name": "Alice"})

    user = await runtime.exchange.exchange("the-code")

    assert user.id == "42"
    assert user.username == "alice"
    assert user.access_token == "at-1"
    assert user.token_type == "Bearer"

    (token_req,) = fake_discord.calls("POST", "/oauth2/token")
    assert token_req.headers["Content-Type"] == "application/x-www-form-urlencoded"
    form = parse_qs(token_req.content.decode())
    assert form == {
        "client_id": ["1234567890"],
        "client_secret": ["client-secret"],
        "grant_type": ["authorization_code"],
        "code": ["the-code"],
        "redirect_uri": ["https://joiner.example.com/callback"],
    }

    (me_req,) = fake_discord.calls("GET", "/users/@me")
    assert me_req.headers["Authorization"] == "Bearer at-1"


@pytest.mark.asyncio
async def test_exchange_defaults_token_type(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.token_response = (200, {"access_token": "at-1"})

    user = await runtime.exchange.exchange("code")

    assert user.token_type == "Bearer"


@pytest.mark.asyncio
async def test_exchange_token_rejection(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.token_response = (400, {"error": "invalid_grant", "error_description": "Invalid \"code\" in request."})

    with pytest.raises(ExchangeFailure) as info:
        await runtime.exchange.exchange("stale-code")

    assert info.value.stage == "token"
    assert info.value.status == 400
    assert info.value.detail == 'Invalid "code" in request.'
    # No identity lookup after a failed token call.
    assert fake_discord.calls("GET", "/users/@me") == []


@pytest.mark.asyncio
async def test_exchange_token_transport_failure(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.unreachable.append("/oauth2/token")

    with pytest.raises(ExchangeFailure) as info:
        await runtime.exchange.exchange("code")

    assert info.value.stage == "token"
    assert info.value.status == 503


@pytest.mark.asyncio
async def test_exchange_identity_rejection(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.identity_response = (401, {"message": "401: Unauthorized", "code": 0})

    with pytest.raises(ExchangeFailure) as info:
        await runtime.exchange.exchange("code")

    assert info.value.stage == "identity"
    assert info.value.detail == "401: Unauthorized"
