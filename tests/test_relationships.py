import pytest

from domain.models import SchemaModel
from reasoning.relationships import (
    NO_RELATIONSHIPS_MARKER,
    PLURAL_MATCH,
    SUBSTRING_MATCH,
    RelationshipInferencer,
    match_confidence,
    reference_base,
)


def _model(tables):
    model = SchemaModel()
    for table, columns in tables.items():
        for column in columns:
            model.add_column(table, column, "INT")
    return model


@pytest.fixture
def user_model():
    return _model({
        "users": ["id", "name"],
        "orders": ["order_id", "user_id"],
        "user_profiles": ["profile_id", "user_id"],
    })


@pytest.mark.parametrize(
    "column, base",
    [
        ("department_id", "department"),
        ("customerid", "customer"),
        ("Customer_ID", "customer"),
        ("id", None),
        ("ID", None),
        ("_id", None),
        ("name", None),
    ],
)
def test_reference_base(column, base):
    assert reference_base(column) == base


def test_match_confidence_tiers():
    assert match_confidence("Department", "department") == 1.0
    assert match_confidence("departments", "department") == PLURAL_MATCH
    assert match_confidence("branches", "branch") == PLURAL_MATCH
    assert match_confidence("user_profiles", "user") == SUBSTRING_MATCH
    assert match_confidence("orders", "user") == 0.0


def test_hints_from_tree(tree_model):
    assert RelationshipInferencer().infer(tree_model) == [
        "employees.department_id might reference departments.department_id"
    ]


def test_target_column_defaults_to_id(user_model):
    hints = RelationshipInferencer().infer(user_model)
    assert hints == [
        "orders.user_id might reference users.id",
        "orders.user_id might reference user_profiles.user_id",
        "user_profiles.user_id might reference users.id",
    ]


def test_confidence_carried_and_filtered(user_model):
    candidates = RelationshipInferencer().candidates(user_model)
    assert [h.confidence for h in candidates] == [PLURAL_MATCH, SUBSTRING_MATCH, PLURAL_MATCH]

    strict = RelationshipInferencer(min_confidence=0.6).infer(user_model)
    assert "orders.user_id might reference user_profiles.user_id" not in strict
    assert len(strict) == 2


def test_no_self_references():
    model = _model({"nodes": ["id", "node_id", "parent_id"]})
    assert RelationshipInferencer().infer(model) == [NO_RELATIONSHIPS_MARKER]


def test_unconventional_names_give_marker():
    model = _model({"a": ["x", "y"], "b": ["z"]})
    assert RelationshipInferencer().infer(model) == [NO_RELATIONSHIPS_MARKER]


def test_empty_model():
    assert RelationshipInferencer().infer(SchemaModel()) == [NO_RELATIONSHIPS_MARKER]
