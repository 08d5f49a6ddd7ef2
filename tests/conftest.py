"""Shared fixtures: a controllable clock and an app over the in-memory store."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from chroma_app.app import ChromaApp
from chroma_app.config import AppConfig
from memory.session_holder import InMemorySessionHolder
from storage.object_store import InMemoryObjectStore

# 2023-11-14 22:13:20 UTC
START = 1_700_000_000.0
DAY = 86400.0


class FakeClock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0.0, days: float = 0.0) -> None:
        self.now += seconds + days * DAY


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        store_backend="memory",
        store_path=str(tmp_path / "chroma.db"),
        session_path=str(tmp_path / "session.json"),
    )


@pytest.fixture()
def chroma(config: AppConfig, clock: FakeClock) -> ChromaApp:
    app = ChromaApp(config=config, store=InMemoryObjectStore(), session=InMemorySessionHolder(), clock=clock)
    asyncio.run(app.open())
    return app
