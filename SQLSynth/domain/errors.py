# domain/errors.py
from typing import Optional


class SQLSynthError(Exception):
    """Base class for errors raised while turning a question into SQL."""


class InputValidationError(SQLSynthError):
    """Empty or oversized question, or a schema that yields no tables."""


class RetrievalError(SQLSynthError):
    """The similarity index could not be queried. Never leaves the retriever."""


class GenerationError(SQLSynthError):
    """The generation service produced nothing usable within the retry budget."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class GenerationCancelled(GenerationError):
    pass


class SQLValidationFailure(SQLSynthError):
    """Generated SQL failed the keyword, forbidden-pattern or parenthesis checks."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
