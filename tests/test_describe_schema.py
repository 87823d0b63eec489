import pytest
from sqlalchemy import create_engine, text

from pipelines.describe_schema import describe_database
from reasoning.schema_parser import SchemaParser


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE employees (emp_id INTEGER, name VARCHAR(50), department_id INTEGER)"))
        conn.execute(text("CREATE TABLE departments (department_id INTEGER, dept_name VARCHAR(50))"))
    yield engine
    engine.dispose()


def test_describe_lines(engine):
    lines = describe_database(engine).split("\n")
    assert "TABLE employees (emp_id INTEGER, name VARCHAR(50), department_id INTEGER)" in lines
    assert "TABLE departments (department_id INTEGER, dept_name VARCHAR(50))" in lines


def test_description_is_parseable(engine):
    model = SchemaParser().parse(describe_database(engine))

    assert sorted(model.table_names) == ["departments", "employees"]
    assert [(c.name, c.data_type) for c in model.tables["employees"].columns] == [
        ("emp_id", "INT"),
        ("name", "VARCHAR(50)"),
        ("department_id", "INT"),
    ]


def test_empty_database(tmp_path):
    assert describe_database(create_engine(f"sqlite:///{tmp_path / 'empty.db'}")) == ""
