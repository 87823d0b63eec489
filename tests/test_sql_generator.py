"""
Retry behaviour of the SQL generator against a mocked generation service.
"""

import threading

import pytest
import requests

from domain.errors import GenerationCancelled, GenerationError
from infra.llm_client import LLMResponseError
from reasoning.sql_generator import SQLGenerator


@pytest.fixture
def generator(fake_llm, sleeps):
    return SQLGenerator(llm=fake_llm, max_attempts=3, backoff_base=0.5, timeout=42, sleep=sleeps.append)


def test_first_attempt_succeeds(generator, fake_llm, sleeps):
    fake_llm.generate.return_value = "  SELECT 1  "

    assert generator.generate("prompt") == "SELECT 1"
    fake_llm.generate.assert_called_once_with("prompt", timeout=42)
    assert sleeps == []


def test_timeouts_exhaust_with_exponential_backoff(generator, fake_llm, sleeps):
    fake_llm.generate.side_effect = requests.Timeout("read timed out")

    with pytest.raises(GenerationError) as exc:
        generator.generate("prompt")

    assert fake_llm.generate.call_count == 3
    assert sleeps == [0.5, 1.0]
    assert exc.value.attempts == 3
    assert "after 3 attempts" in str(exc.value)
    assert "read timed out" in str(exc.value)


def test_empty_reply_is_retried(generator, fake_llm, sleeps):
    fake_llm.generate.side_effect = ["   ", "SELECT 2"]

    assert generator.generate("prompt") == "SELECT 2"
    assert sleeps == [0.5]


def test_all_empty_replies(generator, fake_llm):
    fake_llm.generate.return_value = ""

    with pytest.raises(GenerationError, match="no content"):
        generator.generate("prompt")


@pytest.mark.parametrize(
    "error",
    [requests.HTTPError("500 Server Error"), requests.ConnectionError("refused"), LLMResponseError("bad body")],
)
def test_transport_errors_are_retried(generator, fake_llm, error):
    fake_llm.generate.side_effect = [error, "SELECT 3"]
    assert generator.generate("prompt") == "SELECT 3"


def test_unexpected_errors_propagate(generator, fake_llm):
    fake_llm.generate.side_effect = KeyError("boom")
    with pytest.raises(KeyError):
        generator.generate("prompt")
    assert fake_llm.generate.call_count == 1


def test_backoff_delay(generator):
    assert [generator.backoff_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_cancelled_before_first_attempt(generator, fake_llm):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(GenerationCancelled):
        generator.generate("prompt", cancel=cancel)
    fake_llm.generate.assert_not_called()


def test_cancelled_during_backoff(generator, fake_llm, sleeps):
    cancel = threading.Event()

    def fail_and_cancel(prompt, timeout=None):
        cancel.set()
        raise requests.Timeout("slow")

    fake_llm.generate.side_effect = fail_and_cancel

    with pytest.raises(GenerationCancelled):
        generator.generate("prompt", cancel=cancel)
    assert fake_llm.generate.call_count == 1
