"""
Pytest configuration and shared fixtures.

Remote collaborators (Ollama, Qdrant) are always replaced with mocks here;
nothing in the suite needs a running service.
"""

import logging
from unittest.mock import MagicMock

import pytest

from infra.llm_client import LLMClient
from infra.qdrant_client import Qdrant
from reasoning.schema_parser import SchemaParser

# ============================================================================
# Schema texts
# ============================================================================

TREE_SCHEMA = """root
 |-- employees: struct (nullable = true)
 |    |-- emp_id: integer (nullable = true)
 |    |-- name: string (nullable = true)
 |    |-- department_id: integer (nullable = true)
 |    |-- salary: decimal(10,2) (nullable = true)
 |    |-- skills: array (nullable = true)
 |    |    |-- element: string (containsNull = true)
 |    |-- address: struct (nullable = true)
 |    |    |-- city: string (nullable = true)
 |-- departments: struct (nullable = true)
 |    |-- department_id: integer (nullable = true)
 |    |-- dept_name: string (nullable = true)
"""

LOOSE_SCHEMA = """root
  orders: struct (nullable = true)
      order_id: long (nullable = false)
      customer_id: integer (nullable = true)
      items: array (nullable = true)
          element: string (nullable = true)
  customers: struct (nullable = true)
      customer_id: integer (nullable = true)
      email: string (nullable = true)
"""

SINGLE_TABLE_SCHEMA = """root
 |-- emp_id: integer (nullable = true)
 |-- name: string (nullable = true)
 |-- tags: array (nullable = true)
 |    |-- element: string (containsNull = true)
"""

KEY_TYPE_SCHEMA = "emp_id: int, name: string, hired = date, select: int, note: hello"

DDL_SCHEMA = "TABLE employees (emp_id INT, name STRING, salary DOUBLE)"


@pytest.fixture
def tree_schema():
    return TREE_SCHEMA


@pytest.fixture
def ddl_schema():
    return DDL_SCHEMA


@pytest.fixture
def tree_model():
    return SchemaParser().parse(TREE_SCHEMA)


# ============================================================================
# Remote collaborators
# ============================================================================


@pytest.fixture
def fake_llm():
    """LLMClient stand-in; set ``generate.return_value`` or ``side_effect``."""
    return MagicMock(spec=LLMClient)


@pytest.fixture
def fake_qdrant():
    """Qdrant stand-in returning no hits by default."""
    qdrant = MagicMock(spec=Qdrant)
    qdrant.search.return_value = []
    return qdrant


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping."""
    return []


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    caplog.set_level(logging.DEBUG)
    yield
