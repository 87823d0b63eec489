# domain/models.py
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataKind(str, Enum):
    INT = "INT"
    BIGINT = "BIGINT"
    STRING = "STRING"
    DOUBLE = "DOUBLE"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    BINARY = "BINARY"
    TINYINT = "TINYINT"
    SMALLINT = "SMALLINT"
    DECIMAL = "DECIMAL"
    ARRAY = "ARRAY"
    MAP = "MAP"
    STRUCT = "STRUCT"
    OTHER = "OTHER"


class Column(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str

    @property
    def kind(self) -> DataKind:
        if self.data_type.startswith("DECIMAL"):
            return DataKind.DECIMAL
        try:
            return DataKind(self.data_type)
        except ValueError:
            return DataKind.OTHER

    def __str__(self) -> str:
        return f"{self.name} {self.data_type}"


class Table(BaseModel):
    name: str
    columns: List[Column] = []

    def add_column(self, column: Column) -> bool:
        # first declaration of a name wins
        if any(c.name == column.name for c in self.columns):
            return False
        self.columns.append(column)
        return True

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class SchemaModel(BaseModel):
    """Parsed tables keyed by name, in declaration order."""

    tables: Dict[str, Table] = {}

    @property
    def is_empty(self) -> bool:
        return not self.tables

    @property
    def table_names(self) -> List[str]:
        return list(self.tables)

    @property
    def column_count(self) -> int:
        return sum(len(t.columns) for t in self.tables.values())

    def add_table(self, name: str) -> Table:
        if name not in self.tables:
            self.tables[name] = Table(name=name)
        return self.tables[name]

    def add_column(self, table: str, name: str, data_type: str) -> None:
        self.add_table(table).add_column(Column(name=name, data_type=data_type))


def _payload_text(value: Any) -> str:
    # index payloads have carried plain strings as well as nested objects
    if value is None:
        return ""
    if isinstance(value, dict):
        for key in ("text", "value", "content"):
            if key in value:
                return _payload_text(value[key])
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_payload_text(v) for v in value).strip()
    return str(value).strip()


class RetrievedExample(BaseModel):
    question: str = ""
    sql: str = ""
    confidence: float = 0.0

    @field_validator("question", "sql", mode="before")
    @classmethod
    def _normalize_text(cls, v: Any) -> str:
        return _payload_text(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_score(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0

    @property
    def is_valid(self) -> bool:
        return bool(self.question.strip()) and bool(self.sql.strip())


class RelationshipHint(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_table: str
    source_column: str
    target_table: str
    target_column: str = "id"
    confidence: float = 1.0

    @property
    def text(self) -> str:
        return (f"{self.source_table}.{self.source_column} might reference "
                f"{self.target_table}.{self.target_column}")


class Status(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


class PipelineRequest(BaseModel):
    question: str = ""
    raw_schema: Optional[str] = Field(default=None, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class PipelineResult(BaseModel):
    sql: str
    status: Status
    message: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == Status.OK
