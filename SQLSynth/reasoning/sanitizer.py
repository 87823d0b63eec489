# reasoning/sanitizer.py
"""
Cleans raw model output down to a single SQL statement.

``sanitize`` never raises and never returns an empty string: output that
cannot be cleaned becomes a SELECT of an error message. It is idempotent,
``sanitize(sanitize(x)) == sanitize(x)``.
"""
import logging
import re

from reasoning.prompt_templates import INSUFFICIENT_DATA
from reasoning.validator import PERMISSIVE_STARTS as ALLOWED_LEADING_KEYWORDS

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_SQL = f"SELECT '{INSUFFICIENT_DATA}' AS message;"

_THINKING = re.compile(r"<(think|thinking|reasoning)>.*?</\1>", re.IGNORECASE | re.DOTALL)
_UNCLOSED_THINKING = re.compile(r"<(think|thinking|reasoning)>.*\Z", re.IGNORECASE | re.DOTALL)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"--[^\n]*")
_CODE_FENCE = re.compile(r"```[a-zA-Z]*")
_META_LINE = re.compile(
    r"^[ \t]*(explanation|answer|question|sql|query|note|output|result|reasoning|thought|response)"
    r"[ \t]*:[ \t]*(?P<rest>[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)
# known tag names with attribute-shaped bodies only; `a<b AND c>d` is SQL
_HTML_TAG = re.compile(
    r"</?(?:p|br|hr|div|span|pre|code|b|i|u|em|strong|html|body|head|sql|answer|"
    r"output|result|response|query)"
    r"(?:\s+[\w-]+\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s<>]+))*\s*/?>",
    re.IGNORECASE,
)
_BLANK_LINES = re.compile(r"\n\s*\n+")
_SENTINEL = re.compile(r"insufficient[\s_]+data", re.IGNORECASE)
_LEADING_KEYWORD = re.compile(r"\b(" + "|".join(ALLOWED_LEADING_KEYWORDS) + r")\b", re.IGNORECASE)
_STARTS_WITH_KEYWORD = re.compile(r"^\s*(" + "|".join(ALLOWED_LEADING_KEYWORDS) + r")\b", re.IGNORECASE)

_MAX_CLEANUP_PASSES = 10


def error_sql(message: str) -> str:
    """A valid statement that selects ``message`` as an error payload."""
    safe = re.sub(r"\s+", " ", message).replace("'", "''").strip()
    return f"SELECT 'ERROR: {safe}' AS error_message;"


def _keep_sql_after_label(m: re.Match) -> str:
    rest = m.group("rest")
    return rest if _STARTS_WITH_KEYWORD.match(rest) else ""


def _strip_artifacts(text: str) -> str:
    text = _THINKING.sub("", text)
    text = _UNCLOSED_THINKING.sub("", text)
    text = _BLOCK_COMMENT.sub("", text)
    text = _LINE_COMMENT.sub("", text)
    text = _CODE_FENCE.sub("", text)
    text = _META_LINE.sub(_keep_sql_after_label, text)
    return _HTML_TAG.sub("", text)


def _first_statement(text: str) -> str:
    quote = None
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == ";":
            return text[:i + 1]
    return text


class OutputSanitizer:
    def sanitize(self, raw_text: str) -> str:
        try:
            return self._sanitize(raw_text or "")
        except Exception:
            logger.exception("Sanitization failed")
            return error_sql("Could not sanitize generated SQL")

    def _sanitize(self, text: str) -> str:
        # removing one artifact can expose another, so repeat until stable
        for _ in range(_MAX_CLEANUP_PASSES):
            cleaned = _strip_artifacts(text)
            if cleaned == text:
                break
            text = cleaned

        text = _BLANK_LINES.sub("\n", text).strip()
        if not text:
            return error_sql("No SQL generated")

        if _SENTINEL.search(text):
            return INSUFFICIENT_DATA_SQL

        m = _LEADING_KEYWORD.search(text)
        if m:
            text = text[m.start():]

        text = re.sub(r"\s+", " ", text).strip()
        text = _first_statement(text).strip()
        if text == ";":
            return error_sql("No SQL generated")
        if not text.endswith(";"):
            text += ";"
        return text
