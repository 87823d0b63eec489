# reasoning/prompt_templates.py
import re
from typing import List, Optional

from config.settings import settings
from domain.models import RetrievedExample, SchemaModel

INSUFFICIENT_DATA = "INSUFFICIENT_DATA"

SYSTEM_PROMPT = """You are an expert {dialect} generator. Follow these rules:
- Use ONLY the tables and columns listed below, spelled exactly as listed.
- Never invent or assume table or column names.
- Use explicit JOIN ... ON syntax and table aliases when joining.
- Return only the SQL query, no explanations, terminated by a semicolon.
- If the schema cannot answer the question, respond with exactly: {sentinel}"""

TERMINAL_CUE = "Return only the SQL query.\n\nSQL QUERY:"

_TIME_WORDS = re.compile(
    r"\b(date|time|day|days|week|weeks|month|months|year|years|quarter|today|yesterday|"
    r"recent|recently|last|since|before|after|between|during|\d{4})\b", re.IGNORECASE)
_AGGREGATE_WORDS = re.compile(
    r"\b(count|how many|number of|sum|total|average|avg|mean|max|maximum|min|minimum|"
    r"highest|lowest)\b", re.IGNORECASE)
_JOIN_WORDS = re.compile(
    r"\b(join|combine|merge|relationship|across|multiple|compare|each|per|by|"
    r"distribution|group|analy[sz]e|trend|correlation)\b", re.IGNORECASE)
_RANKING_WORDS = re.compile(r"\b(top|bottom|rank|ranking|first|best|worst|most|least)\b", re.IGNORECASE)


def query_guidance(question: str, model: SchemaModel) -> List[str]:
    hints = []
    if _TIME_WORDS.search(question):
        hints.append("Time filter detected: filter date/timestamp columns with BETWEEN "
                     "inclusive bounds or date functions.")
    if _AGGREGATE_WORDS.search(question):
        hints.append("Aggregation detected: use COUNT(), SUM(), AVG(), MAX() or MIN() "
                     "with GROUP BY for per-group results.")
    if _JOIN_WORDS.search(question):
        hints.append("Complex query detected: consider JOINs, GROUP BY, CTEs (WITH) "
                     "or window functions.")
        if len(model.tables) > 1:
            hints.append("Available tables for joins: " + ", ".join(model.table_names))
    if _RANKING_WORDS.search(question):
        hints.append("Ranking detected: use ORDER BY with LIMIT, or ROW_NUMBER()/RANK() OVER (...).")

    low = question.lower()
    for table in model.tables.values():
        for column in table.columns:
            if column.name.lower() in low:
                hints.append(f"Question mentions column {table.name}.{column.name}")
    return hints


def schema_listing(model: SchemaModel) -> str:
    blocks = []
    for table in model.tables.values():
        lines = [f"TABLE {table.name}:"]
        lines += [f"  - {c.name} ({c.data_type})" for c in table.columns]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class PromptBuilder:
    def __init__(self, dialect: Optional[str] = None):
        self.dialect = dialect or settings.SQL_DIALECT

    def build(self, model: SchemaModel, question: str,
              example: Optional[RetrievedExample] = None,
              relationship_hints: Optional[List[str]] = None) -> str:
        sections = [SYSTEM_PROMPT.format(dialect=self.dialect, sentinel=INSUFFICIENT_DATA)]

        if example is not None and example.is_valid:
            sections.append(
                "SIMILAR EXAMPLE:\n"
                f"Similar question: {example.question}\n"
                f"SQL: {example.sql}\n"
                f"Similarity score: {example.confidence}"
            )

        listing = schema_listing(model)
        if listing:
            sections.append("DATABASE SCHEMA:\n" + listing)

        if relationship_hints:
            sections.append("RELATIONSHIPS:\n" + "\n".join(f"- {h}" for h in relationship_hints))

        guidance = query_guidance(question, model)
        if guidance:
            sections.append("QUERY GUIDANCE:\n" + "\n".join(f"- {g}" for g in guidance))

        sections.append(f"QUESTION:\n{question.strip()}")
        sections.append(TERMINAL_CUE)
        return "\n\n".join(sections)
