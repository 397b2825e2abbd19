from __future__ import annotations

import asyncio
import json

import pytest

from .fakes import API_BASE, WEBHOOK_URL, make_user


@pytest.mark.asyncio
@pytest.mark.parametrize("guild_id", [None, "", "   "])
async def test_join_without_guild_makes_no_remote_call(make_runtime, fake_discord, guild_id) -> None:
    runtime = make_runtime()

    ok = await runtime.joiner.join_user(make_user("1"), guild_id)

    assert ok is False
    assert fake_discord.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [201, 204])
async def test_join_success_statuses(make_runtime, fake_discord, status) -> None:
    runtime = make_runtime()
    fake_discord.default_member_status = status

    assert await runtime.joiner.join_user(make_user("7", token="user-tok"), "G1") is True

    (req,) = fake_discord.member_adds()
    assert str(req.url) == f"{API_BASE}/guilds/G1/members/7"
    assert req.headers["Authorization"] == "Bot bot-token"
    assert json.loads(req.content) == {"access_token": "user-tok"}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 400, 403, 429, 500])
async def test_join_other_statuses_fail(make_runtime, fake_discord, status) -> None:
    runtime = make_runtime(AUTO_ROLE_ID="555", WEBHOOK_URL=WEBHOOK_URL)
    fake_discord.default_member_status = status

    assert await runtime.joiner.join_user(make_user("7"), "G1") is False
    await runtime.joiner.drain()

    # Nothing follows a failed join.
    assert fake_discord.role_grants() == []
    assert fake_discord.webhooks() == []


@pytest.mark.asyncio
async def test_join_transport_error_is_a_failure(make_runtime, fake_discord) -> None:
    runtime = make_runtime()
    fake_discord.unreachable.append("/members/")

    assert await runtime.joiner.join_user(make_user("7"), "G1") is False


@pytest.mark.asyncio
async def test_role_grant_after_join(make_runtime, fake_discord) -> None:
    runtime = make_runtime(AUTO_ROLE_ID="555")

    assert await runtime.joiner.join_user(make_user("7"), "G1") is True

    (req,) = fake_discord.role_grants()
    assert str(req.url) == f"{API_BASE}/guilds/G1/members/7/roles/555"
    assert req.headers["Authorization"] == "Bot bot-token"


@pytest.mark.asyncio
async def test_role_grant_failure_does_not_flip_success(make_runtime, fake_discord) -> None:
    runtime = make_runtime(AUTO_ROLE_ID="555")
    fake_discord.role_status = 403

    assert await runtime.joiner.join_user(make_user("7"), "G1") is True
    assert len(fake_discord.role_grants()) == 1


@pytest.mark.asyncio
async def test_role_grant_transport_error_does_not_flip_success(make_runtime, fake_discord) -> None:
    runtime = make_runtime(AUTO_ROLE_ID="555")
    fake_discord.unreachable.append("/roles/")

    assert await runtime.joiner.join_user(make_user("7"), "G1") is True


@pytest.mark.asyncio
async def test_no_role_grant_without_configured_role(make_runtime, fake_discord) -> None:
    runtime = make_runtime()

    assert await runtime.joiner.join_user(make_user("7"), "G1") is True
    assert fake_discord.role_grants() == []


@pytest.mark.asyncio
async def test_webhook_notice_is_posted(make_runtime, fake_discord) -> None:
    runtime = make_runtime(WEBHOOK_URL=WEBHOOK_URL)

    assert await runtime.joiner.join_user(make_user("7", username="alice"), "G1") is True
    await runtime.joiner.drain()

    (req,) = fake_discord.webhooks()
    assert json.loads(req.content) == {"content": "✅ **alice** joined [G1] via OAuth2."}


@pytest.mark.asyncio
async def test_join_returns_before_webhook_notice_completes(make_runtime, fake_discord, monkeypatch) -> None:
    runtime = make_runtime(WEBHOOK_URL=WEBHOOK_URL)
    release = asyncio.Event()
    posted = []

    async def slow_webhook(url, content):
        await release.wait()
        posted.append(content)
        return 204, "", None

    monkeypatch.setattr(runtime.rest, "post_webhook", slow_webhook)

    ok = await asyncio.wait_for(runtime.joiner.join_user(make_user("7", username="alice"), "G1"), 1.0)

    assert ok is True
    assert posted == []

    release.set()
    await runtime.joiner.drain()

    assert posted == ["✅ **alice** joined [G1] via OAuth2."]


@pytest.mark.asyncio
@pytest.mark.parametrize("broken", ["status", "transport"])
async def test_webhook_failure_does_not_flip_success(make_runtime, fake_discord, broken) -> None:
    runtime = make_runtime(WEBHOOK_URL=WEBHOOK_URL)
    if broken == "status":
        fake_discord.webhook_status = 500
    else:
        fake_discord.unreachable.append("hooks.test")

    assert await runtime.joiner.join_user(make_user("7"), "G1") is True
    await runtime.joiner.drain()


@pytest.mark.asyncio
async def test_join_many_attempts_first_n_only(make_runtime, fake_discord) -> None:
    users = [make_user("1", "a"), make_user("2", "b"), make_user("3", "c")]
    runtime = make_runtime(users)
    fake_discord.member_status["1"] = 403

    result = await runtime.joiner.join_many(runtime.store.users(), "G", limit=2)

    assert result.attempted == 2
    assert result.joined == 1
    assert result.failed == 1
    assert [r.url.path.rsplit("/", 1)[-1] for r in fake_discord.member_adds()] == ["1", "2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit, attempted", [(None, 3), (1, 1), (3, 3), (10, 3), (0, 0)])
async def test_join_many_attempt_bound(make_runtime, fake_discord, limit, attempted) -> None:
    runtime = make_runtime([make_user(str(i)) for i in range(1, 4)])

    result = await runtime.joiner.join_many(runtime.store.users(), "G", limit=limit)

    assert result.attempted == attempted
    assert result.joined == attempted
    assert len(fake_discord.member_adds()) == attempted
