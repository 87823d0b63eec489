# retrieval/fingerprint.py
"""
Hand-built lexical fingerprint used as the similarity-index key.

This is not a learned embedding: two questions land close together when they
share (weighted) words, not when they mean the same thing. Every token is
mapped to a fixed pseudo-random Gaussian direction seeded from its bytes, and
the question vector is the term-frequency weighted sum of those directions.
"""
import hashlib
import re
from collections import Counter
from typing import Dict, List, Optional

import numpy as np

from config.settings import settings
from domain.ranking import l2_normalize

SQL_KEYWORDS = frozenset({
    "select", "from", "where", "join", "group", "order", "having", "count", "sum", "avg",
    "max", "min", "distinct", "limit", "offset", "inner", "left", "right", "outer",
    "union", "intersect", "except", "case", "when", "then", "else", "end", "as",
    "and", "or", "not", "in", "exists", "between", "like", "is", "null", "top",
    "average", "total", "number",
})

BUSINESS_TERMS = frozenset({
    "customer", "order", "product", "sale", "sales", "revenue", "profit", "quantity",
    "price", "total", "amount", "date", "time", "month", "year", "category", "status",
    "name", "email", "address", "phone", "city", "state", "country", "employee",
    "employees", "department", "salary", "region", "invoice", "payment",
})

STOP_WORDS = frozenset({
    "the", "an", "of", "to", "for", "on", "at", "by", "with", "me", "my", "we", "our",
    "you", "your", "it", "its", "this", "that", "these", "those", "there", "here",
    "are", "was", "were", "be", "been", "do", "does", "did", "has", "have", "had",
    "what", "which", "who", "whom", "how", "please", "show", "give", "list", "find",
    "can", "could", "would", "should", "all", "each", "per", "about",
})

SQL_KEYWORD_BOOST = 2.0
BUSINESS_TERM_BOOST = 1.5
TOKEN_SCALE = 0.3

_SEED_SALTS = (b"fp-seed-one", b"fp-seed-two", b"fp-seed-three")


def preprocess(text: str) -> str:
    text = re.sub(r"[^a-z0-9\s]", " ", text.lower())
    return re.sub(r"\s+", " ", text).strip()


def tokenize(text: str) -> List[str]:
    return [t for t in preprocess(text).split(" ")
            if len(t) > 1 and t not in STOP_WORDS]


def token_weights(tokens: List[str]) -> Dict[str, float]:
    counts = Counter(tokens)
    total = len(tokens)
    weights = {}
    for token, count in counts.items():
        weight = count / total
        if token in SQL_KEYWORDS:
            weight *= SQL_KEYWORD_BOOST
        if token in BUSINESS_TERMS:
            weight *= BUSINESS_TERM_BOOST
        weights[token] = weight
    return weights


def token_seeds(token: str) -> List[int]:
    data = token.encode("utf-8")
    length = len(data).to_bytes(4, "little")
    return [
        int.from_bytes(hashlib.blake2b(data + length, digest_size=8, salt=salt).digest(), "little")
        for salt in _SEED_SALTS
    ]


def token_vector(token: str, dim: int) -> np.ndarray:
    draws = [np.random.default_rng(seed).standard_normal(dim) * TOKEN_SCALE
             for seed in token_seeds(token)]
    return np.mean(draws, axis=0)


class QueryFingerprinter:
    def __init__(self, dim: Optional[int] = None):
        self.dim = dim or settings.EMBEDDING_DIM

    def fingerprint(self, text: str) -> List[float]:
        tokens = tokenize(text or "")
        vector = np.zeros(self.dim, dtype=np.float64)
        if tokens:
            for token, weight in token_weights(tokens).items():
                vector += weight * token_vector(token, self.dim)
        return l2_normalize(vector).tolist()

    def embed(self, texts: List[str]) -> List[List[float]]:
        return [self.fingerprint(t) for t in texts]
