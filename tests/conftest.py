"""Deterministic probes and log capture shared across tests."""

import pytest
from loguru import logger

from step_profiler import Session


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 100.0) -> None:
        self.time = start
        self.fail = False

    def now(self) -> float:
        if self.fail:
            raise OSError("clock offline")
        return self.time

    def advance(self, seconds: float) -> None:
        self.time += seconds


class ScriptedMemoryProbe:
    """Memory probe returning whatever the test last set."""

    def __init__(self, value: int | tuple[int, ...] = 1_000_000) -> None:
        self.value = value
        self.fail = False

    def memory_used(self) -> int | tuple[int, ...]:
        if self.fail:
            raise OSError("probe offline")
        return self.value


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def memory() -> ScriptedMemoryProbe:
    return ScriptedMemoryProbe()


@pytest.fixture
def session(clock: ManualClock, memory: ScriptedMemoryProbe) -> Session:
    return Session({"script_name": "demo.py"}, clock=clock, memory_probe=memory)


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
