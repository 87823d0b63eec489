# infra/qdrant_client.py
import logging
from typing import Any, Dict, List, Optional

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from config.settings import settings
from domain.errors import RetrievalError

logger = logging.getLogger(__name__)


class Qdrant:
    def __init__(self, client: Optional[QdrantClient] = None, collection: Optional[str] = None):
        self.client = client or QdrantClient(
            url=settings.QDRANT_URL, api_key=settings.QDRANT_API_KEY, timeout=settings.QDRANT_TIMEOUT
        )
        self.collection = collection or settings.QDRANT_COLLECTION

    def ensure_collection(self, dim: Optional[int] = None):
        existing = [c.name for c in self.client.get_collections().collections]
        if self.collection not in existing:
            logger.info("Creating Qdrant collection %s", self.collection)
            self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=dim or settings.EMBEDDING_DIM, distance=Distance.COSINE),
            )

    def upsert(self, ids, vectors, payloads):
        points = [PointStruct(id=ids[i], vector=vectors[i], payload=payloads[i]) for i in range(len(ids))]
        self.client.upsert(collection_name=self.collection, points=points, wait=True)

    def search(self, vector: List[float], limit: int) -> List[Dict[str, Any]]:
        """Nearest points as ``{"score", "payload"}`` dicts, best first."""
        try:
            response = self.client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise RetrievalError(f"Qdrant search failed: {e}") from e

        points = getattr(response, "points", None)
        if points is None:
            raise RetrievalError("Qdrant response has no points")
        return [{"score": p.score, "payload": p.payload} for p in points]

    def is_healthy(self) -> bool:
        try:
            info = self.client.get_collection(self.collection)
            logger.info("Collection %s contains %s points", self.collection, info.points_count)
            return True
        except Exception as e:
            logger.error("Qdrant health check failed: %s", e)
            return False
