import numpy as np
import pytest

from domain.ranking import cosine_similarity, l2_normalize
from retrieval.fingerprint import (
    QueryFingerprinter,
    preprocess,
    token_seeds,
    token_weights,
    tokenize,
)


@pytest.fixture
def fingerprinter():
    return QueryFingerprinter()


def test_preprocess():
    assert preprocess("  How MANY employees?!\n\tNow ") == "how many employees now"


def test_tokenize_drops_stop_words_and_single_characters():
    assert tokenize("Show me the total of a salary by department") == ["total", "salary", "department"]


def test_token_weights_boosts():
    weights = token_weights(["total", "salary", "total"])
    # keyword and business term
    assert weights["total"] == pytest.approx(2 / 3 * 2.0 * 1.5)
    assert weights["salary"] == pytest.approx(1 / 3 * 1.5)


def test_token_seeds_are_stable_and_distinct():
    seeds = token_seeds("salary")
    assert seeds == token_seeds("salary")
    assert len(set(seeds)) == 3
    assert seeds != token_seeds("salaries")


def test_fingerprint_is_deterministic(fingerprinter):
    question = "How many employees are there?"
    assert fingerprinter.fingerprint(question) == QueryFingerprinter().fingerprint(question)


def test_fingerprint_unit_length(fingerprinter):
    vector = fingerprinter.fingerprint("average salary per department")
    assert len(vector) == 384
    assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)


def test_custom_dimension():
    assert len(QueryFingerprinter(dim=16).fingerprint("total revenue")) == 16


@pytest.mark.parametrize("text", ["", "a ? !", "the of by", None])
def test_nothing_left_gives_zero_vector(fingerprinter, text):
    vector = fingerprinter.fingerprint(text)
    assert len(vector) == 384
    assert not any(vector)


def test_case_and_punctuation_insensitive(fingerprinter):
    assert fingerprinter.fingerprint("How many EMPLOYEES?") == fingerprinter.fingerprint("how many employees")


def test_shared_words_are_closer(fingerprinter):
    base = fingerprinter.fingerprint("average salary of employees in each department")
    near = fingerprinter.fingerprint("average salary per department")
    far = fingerprinter.fingerprint("customer email addresses")
    assert cosine_similarity(base, near) > cosine_similarity(base, far)


def test_embed_batch(fingerprinter):
    texts = ["total sales", "count orders"]
    assert fingerprinter.embed(texts) == [fingerprinter.fingerprint(t) for t in texts]


class TestRanking:
    def test_l2_normalize_zero(self):
        assert not l2_normalize(np.zeros(4)).any()

    def test_cosine_similarity(self):
        assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
        assert cosine_similarity([0, 0], [1, 1]) == 0.0

    def test_cosine_similarity_dimension_mismatch(self):
        with pytest.raises(ValueError):
            cosine_similarity([1, 0], [1, 0, 0])
