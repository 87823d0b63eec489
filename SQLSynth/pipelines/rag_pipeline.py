# pipelines/rag_pipeline.py
import logging
import threading
import time
import uuid
from typing import Optional

from config.settings import settings
from domain.errors import GenerationCancelled, GenerationError, InputValidationError, SQLValidationFailure
from domain.models import PipelineResult, RetrievedExample, SchemaModel, Status
from reasoning.prompt_templates import PromptBuilder
from reasoning.relationships import RelationshipInferencer
from reasoning.sanitizer import OutputSanitizer, error_sql
from reasoning.schema_parser import SchemaCache, SchemaParser
from reasoning.sql_generator import SQLGenerator
from reasoning.validator import SQLValidator
from retrieval.example_retriever import RetrievalClient
from retrieval.fingerprint import QueryFingerprinter

logger = logging.getLogger(__name__)

# shared by every pipeline in the process
schema_cache = SchemaCache()


class RAGPipeline:
    """question + schema text -> validated SQL, always as a PipelineResult."""

    def __init__(self,
                 retriever: Optional[RetrievalClient] = None,
                 generator: Optional[SQLGenerator] = None,
                 parser: Optional[SchemaParser] = None,
                 cache: Optional[SchemaCache] = None,
                 fingerprinter: Optional[QueryFingerprinter] = None,
                 inferencer: Optional[RelationshipInferencer] = None,
                 prompt_builder: Optional[PromptBuilder] = None,
                 sanitizer: Optional[OutputSanitizer] = None,
                 validator: Optional[SQLValidator] = None):
        self.fingerprinter = fingerprinter or QueryFingerprinter()
        self.retriever = retriever or RetrievalClient(fingerprinter=self.fingerprinter)
        self.generator = generator or SQLGenerator()
        self.parser = parser or SchemaParser()
        self.cache = cache or schema_cache
        self.inferencer = inferencer or RelationshipInferencer()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.sanitizer = sanitizer or OutputSanitizer()
        self.validator = validator or SQLValidator()

    def process(self, raw_schema: Optional[str], question: Optional[str],
                cancel: Optional[threading.Event] = None) -> PipelineResult:
        return self._run(raw_schema, question, cancel, use_retrieval=True)

    def generate_without_retrieval(self, raw_schema: Optional[str], question: Optional[str],
                                   cancel: Optional[threading.Event] = None) -> PipelineResult:
        return self._run(raw_schema, question, cancel, use_retrieval=False)

    def find_example(self, question: str) -> Optional[RetrievedExample]:
        if not question or not question.strip():
            return None
        return self.retriever.find_example(question)

    def _run(self, raw_schema, question, cancel, use_retrieval: bool) -> PipelineResult:
        started = time.monotonic()
        request_id = uuid.uuid4().hex[:8]
        logger.info("[%s] Processing question", request_id)

        try:
            question, raw_schema = self._validate_request(question, raw_schema)
            model = self._parse_schema(raw_schema, request_id)

            example = None
            if use_retrieval:
                example = self.retriever.retrieve(self.fingerprinter.fingerprint(question))
                if example is None:
                    logger.info("[%s] No valid example found", request_id)
                else:
                    logger.info("[%s] Example found (score %s): %s",
                                request_id, example.confidence, example.question)

            hints = self.inferencer.infer(model)
            prompt = self.prompt_builder.build(model, question, example, hints)
            logger.debug("[%s] Prompt built (%d chars)", request_id, len(prompt))

            raw_sql = self.generator.generate(prompt, cancel=cancel)
            sql = self.sanitizer.sanitize(raw_sql)
            ok, reason = self.validator.check(sql)
            if not ok:
                logger.warning("[%s] Generated SQL failed validation (%s): %s", request_id, reason, sql)
                raise SQLValidationFailure("Generated SQL failed validation checks", reason)

        except InputValidationError as e:
            return self._error(str(e), started, request_id)
        except GenerationCancelled:
            return self._error("Request cancelled", started, request_id)
        except GenerationError as e:
            return self._error(f"SQL generation failed: {e}", started, request_id)
        except SQLValidationFailure as e:
            return self._error(str(e), started, request_id)
        except Exception as e:
            logger.exception("[%s] Unexpected error", request_id)
            return self._error(f"Internal error: {e}", started, request_id)

        elapsed = self._elapsed_ms(started)
        logger.info("[%s] Generated SQL in %dms: %s", request_id, elapsed, sql)
        return PipelineResult(sql=sql, status=Status.OK, message="SQL generated successfully",
                              elapsed_ms=elapsed)

    def _validate_request(self, question, raw_schema):
        if question is None or not question.strip():
            raise InputValidationError("Question cannot be empty")
        if len(question) > settings.MAX_QUESTION_LENGTH:
            raise InputValidationError(f"Question too long (max {settings.MAX_QUESTION_LENGTH} characters)")
        if raw_schema is None or not raw_schema.strip():
            if not settings.FALLBACK_SCHEMA:
                raise InputValidationError("Schema context is required and cannot be empty")
            raw_schema = settings.FALLBACK_SCHEMA
        return question.strip(), raw_schema

    def _parse_schema(self, raw_schema: str, request_id: str) -> SchemaModel:
        model = self.cache.get_or_parse(raw_schema, self.parser)
        if model.is_empty:
            logger.warning("[%s] No tables could be parsed from schema", request_id)
            raise InputValidationError("Could not extract any table information from the provided schema")
        logger.info("[%s] Parsed %d tables", request_id, len(model.tables))
        return model

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _error(self, message: str, started: float, request_id: str) -> PipelineResult:
        logger.info("[%s] Returning error: %s", request_id, message)
        return PipelineResult(sql=error_sql(message), status=Status.ERROR, message=message,
                              elapsed_ms=self._elapsed_ms(started))
