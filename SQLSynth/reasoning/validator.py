# reasoning/validator.py
"""
Shallow lexical guard for generated SQL.

This is not a parser: it checks the leading keyword, a set of forbidden
patterns and parenthesis balance, nothing more.
"""
import logging
import re
from typing import Iterable, List, Optional, Pattern, Tuple

from config.settings import settings

logger = logging.getLogger(__name__)

PERMISSIVE_STARTS = ("WITH", "SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER")
SELECT_ONLY_STARTS = ("WITH", "SELECT")

BASE_FORBIDDEN = (
    r"\bSCRIPT\b",
    r"\bDECLARE\b",
    r"\bEXEC\b",
    r";\s*--",
    r"--\s*--",
)
WRITE_KEYWORDS = ("INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "MERGE", "TRUNCATE")


def parentheses_balanced(sql: str) -> bool:
    depth = 0
    for ch in sql:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _word_pattern(keyword: str) -> str:
    return r"\b" + re.escape(keyword.strip()) + r"\b"


class SQLValidator:
    def __init__(self, policy: Optional[str] = None, extra_forbidden: Optional[Iterable[str]] = None):
        self.policy = policy or settings.SQL_POLICY
        if self.policy not in ("permissive", "select_only"):
            raise ValueError(f"Unknown SQL policy: {self.policy}")
        if extra_forbidden is None:
            extra_forbidden = [k for k in settings.SQL_EXTRA_FORBIDDEN.split(",") if k.strip()]

        self.allowed_starts = PERMISSIVE_STARTS if self.policy == "permissive" else SELECT_ONLY_STARTS
        patterns = list(BASE_FORBIDDEN)
        if self.policy == "select_only":
            patterns += [_word_pattern(k) for k in WRITE_KEYWORDS]
        patterns += [_word_pattern(k) for k in extra_forbidden]
        self.forbidden: List[Pattern] = [re.compile(p, re.IGNORECASE) for p in patterns]

    def check(self, sql: str) -> Tuple[bool, Optional[str]]:
        if not sql or not sql.strip():
            return False, "empty statement"
        upper = sql.strip().upper()
        if not any(re.match(_word_pattern(k), upper) for k in self.allowed_starts):
            return False, "does not start with an allowed keyword"
        for pattern in self.forbidden:
            if pattern.search(sql):
                return False, f"matches forbidden pattern {pattern.pattern}"
        if not parentheses_balanced(sql):
            return False, "unbalanced parentheses"
        return True, None

    def is_valid(self, sql: str) -> bool:
        ok, reason = self.check(sql)
        if not ok:
            logger.warning("SQL rejected (%s): %s", reason, sql)
        return ok
