# pipelines/ingest_examples.py
"""
Loads question/SQL pairs into the similarity index.

Input is a JSON list: [{"question": "...", "sql": "..."}, ...]

    python -m pipelines.ingest_examples examples.json
"""
import json
import logging
import sys
import time
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from domain.models import RetrievedExample
from infra.qdrant_client import Qdrant
from retrieval.fingerprint import QueryFingerprinter

logger = logging.getLogger(__name__)

BATCH_SIZE = 8


def load_examples(path: Path) -> Tuple[List[RetrievedExample], int]:
    """Valid examples from ``path`` and the number of entries skipped."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of question/sql objects")
    examples, skipped = [], 0
    for entry in data:
        try:
            example = RetrievedExample(question=entry.get("question"), sql=entry.get("sql"))
        except (AttributeError, ValidationError):
            skipped += 1
            continue
        if not example.is_valid:
            skipped += 1
            continue
        examples.append(example)
    return examples, skipped


def ingest(examples: List[RetrievedExample], qdrant: Optional[Qdrant] = None,
           fingerprinter: Optional[QueryFingerprinter] = None, pause: float = 0.3) -> Dict[str, int]:
    qdrant = qdrant or Qdrant()
    fingerprinter = fingerprinter or QueryFingerprinter()
    qdrant.ensure_collection(fingerprinter.dim)

    stored, failed = 0, 0
    for i in range(0, len(examples), BATCH_SIZE):
        batch = examples[i:i + BATCH_SIZE]
        ids = [str(uuid.uuid4()) for _ in batch]
        vectors = fingerprinter.embed([e.question for e in batch])
        payloads = [{"question": e.question, "sql": e.sql} for e in batch]
        try:
            qdrant.upsert(ids, vectors, payloads)
        except Exception as e:
            logger.error("Batch %d upsert failed: %s", i // BATCH_SIZE + 1, e)
            failed += len(batch)
            continue
        stored += len(batch)
        if pause:
            time.sleep(pause)  # keep Qdrant responsive

    logger.info("Ingestion complete: %d stored, %d failed", stored, failed)
    return {"stored": stored, "failed": failed}


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 2:
        sys.exit("usage: python -m pipelines.ingest_examples <examples.json>")
    loaded, skipped = load_examples(Path(sys.argv[1]))
    logger.info("Loaded %d examples (%d skipped)", len(loaded), skipped)
    ingest(loaded)
