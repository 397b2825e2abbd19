"""Pytest configuration shared across the suite."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import pytest

from joiner.models import BoundUser
from joiner.runtime import JoinerRuntime, build_runtime
from joiner.store import BindingStore

from .fakes import FakeDiscord, make_settings


@pytest.fixture
def fake_discord() -> FakeDiscord:
    return FakeDiscord()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "bound-users.json"


@pytest.fixture
def make_runtime(fake_discord: FakeDiscord, store_path: Path) -> Callable[..., JoinerRuntime]:
    """Runtime wired to the fake Discord API and a temp store, optionally pre-seeded."""

    def factory(users: Optional[List[BoundUser]] = None, **setting_overrides: str) -> JoinerRuntime:
        settings = make_settings(BOUND_USERS_FILE=str(store_path), **setting_overrides)
        store = BindingStore(store_path)
        for user in users or []:
            store.upsert(user)
        return build_runtime(settings, fake_discord.client(), store=store)

    return factory
