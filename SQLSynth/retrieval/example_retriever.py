# retrieval/example_retriever.py
import logging
from typing import List, Optional

from pydantic import ValidationError

from config.settings import settings
from domain.errors import RetrievalError
from domain.models import RetrievedExample
from infra.qdrant_client import Qdrant
from retrieval.fingerprint import QueryFingerprinter

logger = logging.getLogger(__name__)


class RetrievalClient:
    """Nearest prior question/SQL pair from the similarity index.

    Failures of any kind degrade to ``None``; the similarity score is carried
    along but never used to reject the nearest neighbour.
    """

    def __init__(self, qdrant: Optional[Qdrant] = None,
                 fingerprinter: Optional[QueryFingerprinter] = None,
                 top_k: Optional[int] = None):
        self.qdrant = qdrant or Qdrant()
        self.fingerprinter = fingerprinter or QueryFingerprinter()
        self.top_k = top_k or settings.QDRANT_SEARCH_TOP

    def retrieve(self, vector: List[float]) -> Optional[RetrievedExample]:
        try:
            hits = self.qdrant.search(vector, self.top_k)
        except RetrievalError as e:
            logger.warning("Retrieval unavailable, continuing without example: %s", e)
            return None

        if not hits:
            logger.info("Similarity index returned no results")
            return None

        for hit in hits:
            payload = hit.get("payload") if isinstance(hit, dict) else None
            if not isinstance(payload, dict):
                logger.warning("Match missing payload, skipping")
                continue
            try:
                example = RetrievedExample(
                    question=payload.get("question"),
                    sql=payload.get("sql"),
                    confidence=hit.get("score", 0.0),
                )
            except ValidationError as e:
                logger.warning("Malformed payload skipped: %s", e)
                continue
            if example.is_valid:
                logger.info("Found example (score %.4f): %s", example.confidence, example.question[:50])
                return example

        logger.info("No payload with both question and sql")
        return None

    def find_example(self, question: str) -> Optional[RetrievedExample]:
        return self.retrieve(self.fingerprinter.fingerprint(question))
