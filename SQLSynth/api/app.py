# api/app.py
import asyncio
import logging
import threading
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel

from config.settings import settings
from domain.models import PipelineRequest, PipelineResult, RetrievedExample
from pipelines.ingest_examples import ingest
from pipelines.rag_pipeline import RAGPipeline

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="SQLSynth")

DISCONNECT_POLL_SECONDS = 0.5

_pipeline: Optional[RAGPipeline] = None


def get_pipeline() -> RAGPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = RAGPipeline()
    return _pipeline


async def run_cancellable(request: Request, run: Callable[..., PipelineResult], *args) -> PipelineResult:
    """Runs ``run(*args, cancel=event)`` in a worker thread; a client disconnect sets the event."""
    cancel = threading.Event()
    task = asyncio.ensure_future(asyncio.to_thread(run, *args, cancel=cancel))
    while True:
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            break
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling generation")
            cancel.set()
            break
    return await task


class ExampleRequest(BaseModel):
    question: str


class ExampleResponse(BaseModel):
    question: str = ""
    sql: str = ""
    confidence: float = 0.0


class IngestRequest(BaseModel):
    examples: List[RetrievedExample]


@app.post("/generate-sql", response_model=PipelineResult)
async def generate_sql(req: PipelineRequest, request: Request, pipeline: RAGPipeline = Depends(get_pipeline)):
    return await run_cancellable(request, pipeline.process, req.raw_schema, req.question)


@app.post("/generate-sql-direct", response_model=PipelineResult)
async def generate_sql_direct(req: PipelineRequest, request: Request,
                              pipeline: RAGPipeline = Depends(get_pipeline)):
    return await run_cancellable(request, pipeline.generate_without_retrieval, req.raw_schema, req.question)


@app.post("/rag-example", response_model=ExampleResponse)
def rag_example(req: ExampleRequest, pipeline: RAGPipeline = Depends(get_pipeline)):
    example = pipeline.find_example(req.question)
    if example is None:
        return ExampleResponse()
    return ExampleResponse(question=example.question, sql=example.sql, confidence=example.confidence)


@app.get("/health")
def health(pipeline: RAGPipeline = Depends(get_pipeline)):
    ollama = pipeline.generator.llm.is_healthy()
    qdrant = pipeline.retriever.qdrant.is_healthy()
    return {"status": "ok" if ollama and qdrant else "degraded", "ollama": ollama, "qdrant": qdrant}


@app.post("/ingest")
def ingest_endpoint(req: IngestRequest, pipeline: RAGPipeline = Depends(get_pipeline)):
    valid = [e for e in req.examples if e.is_valid]
    counts = ingest(valid, qdrant=pipeline.retriever.qdrant, fingerprinter=pipeline.fingerprinter, pause=0)
    return {"status": "ok", "skipped": len(req.examples) - len(valid), **counts}
