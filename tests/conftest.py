"""Shared fakes: gateway, sink, session backend and a recording sleep."""

import random

import pytest

from civic_chat.config import ChatConfig
from civic_chat.controller import ChatTurnController

HOUSING_REPLY = (
    "I'm working to expand affordable housing near the Great Park, with new "
    "developments moving through planning over the next two years."
)


class FakeGateway:
    def __init__(self, reply: str = HOUSING_REPLY, error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.on_call = None

    async def complete(self, system_prompt, user_message, max_tokens, temperature):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_message": user_message,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.on_call:
            self.on_call()
        if self.error:
            raise self.error
        return self.reply


class RecordingSleep:
    """Async sleep that returns immediately and remembers every wait."""

    def __init__(self):
        self.waits = []
        self.hook = None

    async def __call__(self, seconds):
        self.waits.append(seconds)
        if self.hook:
            self.hook(len(self.waits))


class FakeSink:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.sent = []

    def escalate(self, question, context):
        self.sent.append((question, context))
        return self.ok


class FakeBackend:
    def __init__(self, sessions=None):
        self.saved = []
        self.deleted = []
        self._initial = list(sessions or [])

    def save(self, session):
        self.saved.append(session)

    def list(self):
        return list(self._initial)

    def delete(self, session_id):
        self.deleted.append(session_id)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def make_controller(gateway, sleep, sink):
    def _make(config: ChatConfig = None, llm=gateway):
        return ChatTurnController(
            llm,
            config=config or ChatConfig(),
            sink=sink,
            rng=random.Random(7),
            sleep=sleep,
        )

    return _make
