"""Shared pytest fixtures for Resilient Chat SDK tests."""

import random

import pytest
from dotenv import load_dotenv

# Load environment variables from .env file for tests
load_dotenv()

from resilient_chat.chat import ChatContext, ChatSession
from resilient_chat.fallback import reset_negotiation_broker
from resilient_chat.models import Content, FunctionCall, FunctionResponse, Part, Role
from resilient_chat.observability import RetryMetrics
from resilient_chat.recording import InMemoryChatRecorder
from resilient_chat.reliability import RetryOptions
from tests.helpers.streaming_mocks import FakeContentGenerator, text_chunks

TEST_MODEL = "gemini-2.5-pro"


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: drives the HTTP generator end to end")


@pytest.fixture(autouse=True)
def fresh_negotiation_broker():
    """Every test starts with an empty process-wide broker."""
    reset_negotiation_broker()
    yield
    reset_negotiation_broker()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    env_vars = {
        "GEMINI_API_KEY": "test-gemini-key",
        "RESILIENT_CHAT_MODEL": "flash",
        "RESILIENT_CHAT_MAX_ATTEMPTS": "5",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def rng():
    """Seeded RNG so jittered delays are reproducible."""
    return random.Random(1234)


@pytest.fixture
def fast_retry_options(rng):
    """Retry options with millisecond delays."""
    def build(**overrides):
        values = {"max_attempts": 3, "initial_delay_ms": 1, "max_delay_ms": 5, "rng": rng}
        values.update(overrides)
        return RetryOptions(**values)
    return build


@pytest.fixture
def user_text():
    def build(text):
        return Content(role=Role.USER, parts=[Part(text=text)])
    return build


@pytest.fixture
def model_text():
    def build(text):
        return Content(role=Role.MODEL, parts=[Part(text=text)])
    return build


@pytest.fixture
def tool_exchange():
    """A model function call followed by the user's function response."""
    def build(name="read_file", call_id="call-1", signature=None):
        call = Content(
            role=Role.MODEL,
            parts=[Part(function_call=FunctionCall(id=call_id, name=name, args={"path": "a.py"}),
                        thought_signature=signature)],
        )
        response = Content(
            role=Role.USER,
            parts=[Part(function_response=FunctionResponse(id=call_id, name=name, response={"ok": True}))],
        )
        return [call, response]
    return build


@pytest.fixture
def recorder():
    return InMemoryChatRecorder()


@pytest.fixture
def make_session(recorder, monkeypatch):
    """Build a ChatSession over a scripted generator with fast retries."""
    # Content retries wait 500ms per attempt by default
    monkeypatch.setattr("resilient_chat.chat.session.INVALID_CONTENT_INITIAL_DELAY_MS", 1)

    def build(*scripts, history=None, model=TEST_MODEL, **context_kwargs):
        generator = FakeContentGenerator(*(scripts or (text_chunks(["Hello"]),)))
        values = {
            "model": model,
            "recorder": recorder,
            "initial_delay_ms": 1,
            "max_delay_ms": 5,
            "metrics": RetryMetrics(),
        }
        values.update(context_kwargs)
        context = ChatContext(generator, **values)
        return ChatSession(context, history=history), generator
    return build
