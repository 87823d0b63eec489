# pipelines/describe_schema.py
"""
Renders the tables of a live database as ``TABLE name (col TYPE, ...)`` lines,
a format the schema parser reads. The output can be used as FALLBACK_SCHEMA.

    python -m pipelines.describe_schema [database-url]
"""
import logging
import sys
from typing import Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine

from config.settings import settings

logger = logging.getLogger(__name__)


def describe_database(engine: Optional[Engine] = None, schema: Optional[str] = None) -> str:
    engine = engine or create_engine(settings.TARGET_DB_URL)
    inspector = inspect(engine)

    lines = []
    for table in inspector.get_table_names(schema=schema):
        cols = inspector.get_columns(table, schema=schema)
        col_text = ", ".join(f"{c['name']} {str(c['type']).upper()}" for c in cols)
        prefix = f"DATABASE {schema} -> " if schema else ""
        lines.append(f"{prefix}TABLE {table} ({col_text})")
        logger.debug("Described table %s (%d columns)", table, len(cols))
    return "\n".join(lines)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    url = sys.argv[1] if len(sys.argv) > 1 else settings.TARGET_DB_URL
    print(describe_database(create_engine(url)))
