# reasoning/schema_parser.py
"""
Turns a loosely formatted schema dump into a SchemaModel.

Accepted inputs, tried in order until one produces at least one table:

1. Spark ``printSchema()`` trees where each table is a named struct under ``root``
2. the same trees with damaged or missing tree-drawing characters
3. a ``root`` tree of plain fields (one DataFrame, no named structs)
4. ``name: type`` / ``name=type`` pairs anywhere in the text
5. DDL-ish ``TABLE name (col TYPE, ...)`` blocks, including ``render_ddl`` output

Parsing never raises; total failure gives an empty SchemaModel, which the
caller must treat as an error.
"""
import hashlib
import logging
import re
import threading
from collections import OrderedDict
from typing import Callable, List, NamedTuple, Optional, Tuple

from config.settings import settings
from domain.models import SchemaModel

logger = logging.getLogger(__name__)

_TYPE_SYNONYMS = {
    "integer": "INT",
    "int": "INT",
    "long": "BIGINT",
    "bigint": "BIGINT",
    "short": "SMALLINT",
    "smallint": "SMALLINT",
    "byte": "TINYINT",
    "tinyint": "TINYINT",
    "string": "STRING",
    "str": "STRING",
    "double": "DOUBLE",
    "float": "FLOAT",
    "real": "FLOAT",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "date": "DATE",
    "timestamp": "TIMESTAMP",
    "binary": "BINARY",
}

# type words accepted by the key:type strategy
TYPE_VOCABULARY = frozenset(_TYPE_SYNONYMS) | frozenset({
    "decimal", "numeric", "number", "array", "map", "struct",
    "varchar", "char", "text", "datetime", "time", "timestamp_ntz", "uuid", "json",
})

SQL_RESERVED = frozenset({
    "select", "from", "where", "table", "create", "alter", "drop", "insert", "update",
    "delete", "into", "values", "as", "and", "or", "not", "null", "is", "in", "on",
    "join", "group", "order", "by", "having", "limit", "with", "default", "key",
    "primary", "foreign", "references", "constraint", "unique", "index", "check",
    "type", "nullable", "root", "database", "schema", "struct", "array", "map",
})

_CONSTRAINT_WORDS = ("primary", "foreign", "constraint", "unique", "key", "index", "check")

_TYPE_TOKEN = r"[A-Za-z_]\w*(?:<.*?>|\([^)]*\))?"

_TREE_NODE = re.compile(
    r"^(?P<bars>[ \t]*(?:\|[ \t]*)+)--\s*(?P<name>\w+)\s*:\s*(?P<type>" + _TYPE_TOKEN + r")"
    r"\s*\(nullable\s*=\s*(?:true|false)\)",
    re.IGNORECASE,
)
_LOOSE_NODE = re.compile(
    r"^(?P<lead>[ \t|+*`>\-]*?)(?P<name>[A-Za-z_]\w*)\s*:\s*(?P<type>" + _TYPE_TOKEN + r")"
    r"\s*\(nullable\s*=\s*(?:true|false)\)",
    re.IGNORECASE,
)
_ROOT_MARKER = re.compile(r"^\s*root\s*:?\s*$", re.IGNORECASE | re.MULTILINE)
_KEY_TYPE_PAIR = re.compile(
    r"(?<![\w.])(?P<name>[A-Za-z_]\w*)\s*[:=]\s*"
    r"(?P<type>[A-Za-z_]+(?:\(\s*\d+(?:\s*,\s*\d+)?\s*\)|<[^>\n]*>)?)"
)
_DDL_TABLE = re.compile(
    r"\b(?:CREATE\s+(?:EXTERNAL\s+)?)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(?P<name>`[^`]+`|\"[^\"]+\"|\[[^\]]+\]|[\w.]+)\s*\(",
    re.IGNORECASE,
)
_DDL_COLUMN = re.compile(
    r"^\s*(?P<name>`[^`]+`|\"[^\"]+\"|\[[^\]]+\]|\w+)\s+(?P<type>[A-Za-z_]\w*(?:\s*\([^)]*\)|\s*<.*>)?)",
    re.DOTALL,
)


class _Node(NamedTuple):
    indent: int
    name: str
    data_type: str


def map_type(token: str) -> str:
    """Canonical column type for a raw type token (case-insensitive)."""
    t = token.strip()
    low = t.lower()
    base = re.match(r"[a-z_]*", low).group(0)
    if base in ("array", "map", "struct"):
        return base.upper()
    if base in ("decimal", "numeric"):
        return "DECIMAL" + re.sub(r"\s+", "", t[len(base):]).upper()
    if low in _TYPE_SYNONYMS:
        return _TYPE_SYNONYMS[low]
    return t.upper()


def clean_schema_text(raw: str) -> str:
    text = (raw or "").replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[\x00-\x08\x0b-\x1f\x7f]", "", text)
    return text.strip()


def _is_struct(data_type: str) -> bool:
    return data_type.lower().startswith("struct")


def _loose_nodes(text: str) -> List[_Node]:
    nodes = []
    for line in text.split("\n"):
        m = _LOOSE_NODE.match(line)
        if m:
            nodes.append(_Node(len(m.group("lead")), m.group("name"), m.group("type")))
    return nodes


def parse_tree(text: str) -> SchemaModel:
    model = SchemaModel()
    current = None
    for line in text.split("\n"):
        m = _TREE_NODE.match(line)
        if not m:
            continue
        depth = m.group("bars").count("|")
        name, data_type = m.group("name"), m.group("type")
        if depth == 1:
            current = model.add_table(name) if _is_struct(data_type) else None
        elif depth == 2 and current is not None:
            model.add_column(current.name, name, map_type(data_type))
        # deeper nodes belong to a nested struct/array column
    return model


def parse_loose_tree(text: str) -> SchemaModel:
    model = SchemaModel()
    nodes = _loose_nodes(text)
    if not nodes:
        return model
    top = min(n.indent for n in nodes)
    current, column_indent = None, None
    for node in nodes:
        if node.indent <= top:
            current = model.add_table(node.name) if _is_struct(node.data_type) else None
            column_indent = None
            continue
        if current is None:
            continue
        if column_indent is None:
            column_indent = node.indent
        if node.indent <= column_indent:
            model.add_column(current.name, node.name, map_type(node.data_type))
    return model


def parse_single_table(text: str) -> SchemaModel:
    model = SchemaModel()
    if not _ROOT_MARKER.search(text):
        return model
    nodes = _loose_nodes(text)
    if not nodes:
        return model
    top = min(n.indent for n in nodes)
    top_level = [n for n in nodes if n.indent <= top]
    if any(_is_struct(n.data_type) for n in top_level):
        return model
    for node in top_level:
        model.add_column(settings.DEFAULT_TABLE_NAME, node.name, map_type(node.data_type))
    return model


def _mask_type_bodies(text: str) -> str:
    """Blank out balanced ``<...>`` spans so nested struct fields are not read as columns."""
    chars = list(text)
    depth, start = 0, 0
    for i, ch in enumerate(text):
        if ch == "<":
            if depth == 0:
                start = i
            depth += 1
        elif ch == ">" and depth:
            depth -= 1
            if depth == 0:
                chars[start:i + 1] = " " * (i + 1 - start)
    return "".join(chars)


def parse_key_type(text: str) -> SchemaModel:
    model = SchemaModel()
    for m in _KEY_TYPE_PAIR.finditer(_mask_type_bodies(text)):
        name, data_type = m.group("name"), m.group("type")
        if name.lower() in SQL_RESERVED:
            continue
        base = re.match(r"[A-Za-z_]+", data_type).group(0).lower()
        if base not in TYPE_VOCABULARY:
            continue
        model.add_column(settings.DEFAULT_TABLE_NAME, name, map_type(data_type))
    return model


def _split_top_level(body: str) -> List[str]:
    parts, depth, start = [], 0, 0
    for i, ch in enumerate(body):
        if ch in "(<":
            depth += 1
        elif ch in ")>":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return [p.strip() for p in parts if p.strip()]


def _closing_paren(text: str, open_index: int) -> int:
    depth = 0
    for i in range(open_index, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _unquote(identifier: str) -> str:
    return identifier.strip("`\"[]")


def parse_ddl(text: str) -> SchemaModel:
    model = SchemaModel()
    pos = 0
    while True:
        m = _DDL_TABLE.search(text, pos)
        if not m:
            break
        close = _closing_paren(text, m.end() - 1)
        if close == -1:
            break
        table = model.add_table(_unquote(m.group("name")))
        for definition in _split_top_level(text[m.end():close]):
            if definition.split()[0].lower() in _CONSTRAINT_WORDS:
                continue
            col = _DDL_COLUMN.match(definition)
            if col:
                model.add_column(table.name, _unquote(col.group("name")), map_type(col.group("type")))
        pos = close + 1
    return model


Strategy = Tuple[str, Callable[[str], SchemaModel]]

DEFAULT_STRATEGIES: List[Strategy] = [
    ("tree", parse_tree),
    ("loose_tree", parse_loose_tree),
    ("single_table", parse_single_table),
    ("key_type", parse_key_type),
    ("ddl", parse_ddl),
]


class SchemaParser:
    def __init__(self, strategies: Optional[List[Strategy]] = None):
        self.strategies = strategies or DEFAULT_STRATEGIES

    def parse(self, raw_schema: str) -> SchemaModel:
        text = clean_schema_text(raw_schema)
        if not text:
            return SchemaModel()
        for name, strategy in self.strategies:
            try:
                model = strategy(text)
            except Exception as e:
                logger.warning("Schema strategy %s failed: %s", name, e)
                continue
            if not model.is_empty:
                logger.debug("Schema parsed by %s strategy: %s", name, model.table_names)
                return model
        logger.info("No schema strategy produced a table (%d chars)", len(text))
        return SchemaModel()


def render_ddl(model: SchemaModel) -> str:
    blocks = []
    for table in model.tables.values():
        cols = ",\n".join(f"    {c.name} {c.data_type}" for c in table.columns)
        blocks.append(f"TABLE {table.name} (\n{cols}\n);")
    return "\n\n".join(blocks)


class SchemaCache:
    """Process-wide LRU of parsed schemas keyed by a hash of the schema text."""

    def __init__(self, max_size: Optional[int] = None):
        self._cache: "OrderedDict[str, SchemaModel]" = OrderedDict()
        self._max_size = max_size or settings.SCHEMA_CACHE_SIZE
        self._lock = threading.Lock()

    @staticmethod
    def key(raw_schema: str) -> str:
        return hashlib.sha256(raw_schema.encode("utf-8")).hexdigest()

    def get(self, raw_schema: str) -> Optional[SchemaModel]:
        k = self.key(raw_schema)
        with self._lock:
            model = self._cache.get(k)
            if model is not None:
                self._cache.move_to_end(k)
            return model

    def put(self, raw_schema: str, model: SchemaModel) -> None:
        k = self.key(raw_schema)
        with self._lock:
            self._cache[k] = model
            self._cache.move_to_end(k)
            while len(self._cache) > self._max_size:
                self._cache.popitem(last=False)

    def get_or_parse(self, raw_schema: str, parser: SchemaParser) -> SchemaModel:
        model = self.get(raw_schema)
        if model is None:
            model = parser.parse(raw_schema)
            self.put(raw_schema, model)
        # callers get their own copy; cached entries are never mutated
        return model.model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
