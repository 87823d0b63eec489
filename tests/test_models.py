from domain.models import Column, DataKind, PipelineRequest, SchemaModel, Table


def test_first_column_declaration_wins():
    table = Table(name="t")
    assert table.add_column(Column(name="a", data_type="INT"))
    assert not table.add_column(Column(name="a", data_type="STRING"))
    assert table.columns == [Column(name="a", data_type="INT")]


def test_schema_model_helpers():
    model = SchemaModel()
    assert model.is_empty

    model.add_column("orders", "id", "BIGINT")
    model.add_column("orders", "total", "DECIMAL(10,2)")
    model.add_column("customers", "id", "INT")

    assert model.table_names == ["orders", "customers"]
    assert model.column_count == 3
    assert model.tables["orders"].columns[1].kind == DataKind.DECIMAL
    assert str(model.tables["orders"].columns[0]) == "id BIGINT"


def test_request_schema_alias():
    req = PipelineRequest.model_validate({"schema": "TABLE t (a INT)", "question": "q"})
    assert req.raw_schema == "TABLE t (a INT)"
    assert PipelineRequest(raw_schema="x").raw_schema == "x"
