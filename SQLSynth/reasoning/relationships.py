# reasoning/relationships.py
"""
Best-effort foreign key guesses from column naming conventions.

A column ending in ``_id`` (or ``id``) is matched against the names of the
other tables. Substring matches are kept but carry a low confidence, since a
short base name can match many unrelated tables; tables that do not follow
the convention produce no hint at all.
"""
import logging
from typing import List, Optional

from domain.models import RelationshipHint, SchemaModel, Table

logger = logging.getLogger(__name__)

NO_RELATIONSHIPS_MARKER = "No relationships detected between tables"

EXACT_MATCH = 1.0
PLURAL_MATCH = 0.9
SUBSTRING_MATCH = 0.5


def reference_base(column_name: str) -> Optional[str]:
    low = column_name.lower()
    if low.endswith("_id"):
        base = low[:-3]
    elif low.endswith("id"):
        base = low[:-2]
    else:
        return None
    return base.rstrip("_") or None


def match_confidence(table_name: str, base: str) -> float:
    """0.0 when ``table_name`` does not look like the table ``base`` refers to."""
    t = table_name.lower()
    if t == base:
        return EXACT_MATCH
    if t in (base + "s", base + "es"):
        return PLURAL_MATCH
    if base in t or t in base:
        return SUBSTRING_MATCH
    return 0.0


def _target_column(target: Table, source_column: str) -> str:
    names = target.column_names()
    if source_column in names:
        return source_column
    return "id"


class RelationshipInferencer:
    def __init__(self, min_confidence: float = 0.0):
        self.min_confidence = min_confidence

    def candidates(self, model: SchemaModel) -> List[RelationshipHint]:
        hints: List[RelationshipHint] = []
        seen = set()
        for source in model.tables.values():
            for column in source.columns:
                base = reference_base(column.name)
                if base is None:
                    continue
                for target in model.tables.values():
                    if target.name == source.name:
                        continue
                    confidence = match_confidence(target.name, base)
                    if confidence <= 0.0 or confidence < self.min_confidence:
                        continue
                    hint = RelationshipHint(
                        source_table=source.name,
                        source_column=column.name,
                        target_table=target.name,
                        target_column=_target_column(target, column.name),
                        confidence=confidence,
                    )
                    if hint.text in seen:
                        continue
                    seen.add(hint.text)
                    hints.append(hint)
        logger.debug("Inferred %d relationship hints", len(hints))
        return hints

    def infer(self, model: SchemaModel) -> List[str]:
        hints = [h.text for h in self.candidates(model)]
        return hints or [NO_RELATIONSHIPS_MARKER]
