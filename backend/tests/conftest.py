import os
import asyncio

import pytest

os.environ.setdefault("AUTOTRANSLATE_APP_ENV", "test")
os.environ.setdefault("AUTOTRANSLATE_PROVIDER", "azure")
os.environ.setdefault("AUTOTRANSLATE_TARGET_LANG", "ko")


class FakeStorage:
    """In-memory stand-in for the durable storage collaborator."""

    def __init__(self, files=None):
        self.files: dict[str, str] = dict(files or {})
        self.dirs: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        self.fail_writes = 0
        # Set to an asyncio.Event to hold reads until it is set
        self.read_gate = None

    async def exists(self, path: str) -> bool:
        await asyncio.sleep(0)
        return path in self.files

    async def mkdir(self, path: str) -> None:
        self.dirs.add(path)

    async def read(self, path: str) -> str:
        await asyncio.sleep(0)
        if self.read_gate is not None:
            await self.read_gate.wait()
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write(self, path: str, text: str) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            self.fail_writes -= 1
            raise OSError("disk full")
        self.files[path] = text
        self.writes.append((path, text))


class VirtualClock:
    """Replacement for ``asyncio.sleep`` that advances a fake clock instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    from autotranslate.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()
