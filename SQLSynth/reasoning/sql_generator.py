# reasoning/sql_generator.py
import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

import requests

from config.settings import settings
from domain.errors import GenerationCancelled, GenerationError
from infra.llm_client import LLMClient, LLMResponseError

logger = logging.getLogger(__name__)


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class SQLGenerator:
    """Calls the generation service with bounded retries and exponential backoff.

    An attempt fails on timeout, transport/HTTP error, or an empty reply. After
    a failed attempt that is not the last one the generator waits
    ``backoff_base * 2 ** (attempt - 1)`` seconds. With a ``cancel`` event the
    wait is interruptible and no further attempt is made once it is set.
    """

    def __init__(self, llm: Optional[LLMClient] = None,
                 max_attempts: Optional[int] = None,
                 backoff_base: Optional[float] = None,
                 timeout: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.llm = llm or LLMClient()
        self.max_attempts = max_attempts or settings.GENERATION_MAX_ATTEMPTS
        self.backoff_base = settings.GENERATION_BACKOFF_BASE if backoff_base is None else backoff_base
        self.timeout = timeout or settings.OLLAMA_TIMEOUT
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base * (2 ** (attempt - 1))

    def _wait(self, delay: float, cancel: Optional[threading.Event]) -> None:
        if cancel is None:
            self._sleep(delay)
        elif cancel.wait(delay):
            raise GenerationCancelled("Generation cancelled during backoff")

    def generate(self, prompt: str, cancel: Optional[threading.Event] = None) -> str:
        state = RetryState.ATTEMPTING
        attempt = 0
        last_error: Optional[Exception] = None
        result = ""

        while state not in (RetryState.SUCCEEDED, RetryState.EXHAUSTED):
            if state == RetryState.ATTEMPTING:
                if cancel is not None and cancel.is_set():
                    raise GenerationCancelled("Generation cancelled", attempts=attempt)
                attempt += 1
                logger.debug("SQL generation attempt %d of %d", attempt, self.max_attempts)
                started = time.monotonic()
                try:
                    result = self.llm.generate(prompt, timeout=self.timeout)
                except requests.Timeout as e:
                    last_error = e
                    logger.warning("Generation attempt %d timed out after %.0fs", attempt, self.timeout)
                except (requests.RequestException, LLMResponseError) as e:
                    last_error = e
                    logger.warning("Generation attempt %d failed: %s", attempt, e)
                else:
                    logger.debug("Generation took %.0f ms", (time.monotonic() - started) * 1000)
                    if result and result.strip():
                        state = RetryState.SUCCEEDED
                        continue
                    logger.warning("Empty response received on attempt %d", attempt)
                state = RetryState.BACKOFF if attempt < self.max_attempts else RetryState.EXHAUSTED

            elif state == RetryState.BACKOFF:
                delay = self.backoff_delay(attempt)
                logger.debug("Sleeping %.2fs before retry", delay)
                self._wait(delay, cancel)
                state = RetryState.ATTEMPTING

        if state == RetryState.SUCCEEDED:
            return result.strip()

        reason = str(last_error) if last_error is not None else "exhausted, no content"
        message = f"Failed to generate SQL after {attempt} attempts: {reason}"
        logger.error(message)
        raise GenerationError(message, attempts=attempt)
