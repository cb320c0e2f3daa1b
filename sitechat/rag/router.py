# FILE: sitechat/rag/router.py
"""
FastAPI route for the site chat assistant.

Every outcome, including validation and internal errors, returns the
ChatResponse shape so the widget always has an answer to render.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from sitechat.config import Settings, get_settings
from sitechat.db import get_db
from sitechat.providers import build_embedding_provider, build_generation_provider

from .answerer import GroundedAnswerer
from .prompts import apology_reply, normalize_language
from .retrieval import RetrievalOrchestrator, resolve_search_query
from .schemas import ChatRequest, ChatResponse
from .search import SEARCH_NONE

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/chat",
    tags=["chat"],
)


def get_retriever(settings: Settings = Depends(get_settings)) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(build_embedding_provider(settings.embedding), settings.retrieval)


def get_answerer(settings: Settings = Depends(get_settings)) -> GroundedAnswerer:
    return GroundedAnswerer(build_generation_provider(settings.generation), settings.retrieval)


def _error_response(status_code: int, language: str, error: str) -> JSONResponse:
    body = ChatResponse(
        success=False,
        answer=apology_reply(language),
        language=normalize_language(language),
        error=error,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def _format_validation_error(e: PydanticValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


_MALFORMED = object()


async def read_chat_payload(request: Request) -> Any:
    """Raw JSON body; decoding and shape checks happen in the handler so errors keep the ChatResponse shape."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        return _MALFORMED


@router.post("/retrieve-and-answer", response_model=ChatResponse)
def retrieve_and_answer(
    payload: Any = Depends(read_chat_payload),
    db: Session = Depends(get_db),
    retriever: RetrievalOrchestrator = Depends(get_retriever),
    answerer: GroundedAnswerer = Depends(get_answerer),
):
    """
    Answer a visitor's question from published articles.

    Searches with the resolved query (follow-ups map to the previous
    question) and answers the original query.
    """
    if payload is _MALFORMED:
        logger.info("[chat] Rejected request: malformed JSON body")
        return _error_response(422, "en", "Malformed JSON body")
    if not isinstance(payload, dict):
        logger.info("[chat] Rejected request: body is %s, not an object", type(payload).__name__)
        return _error_response(422, "en", "Request body must be a JSON object")

    raw_language = payload.get("language") if isinstance(payload.get("language"), str) else "en"

    try:
        req = ChatRequest.model_validate(payload)
    except PydanticValidationError as e:
        message = _format_validation_error(e)
        logger.info("[chat] Rejected request: %s", message)
        return _error_response(422, raw_language, message)

    language = normalize_language(req.language)
    try:
        search_query = resolve_search_query(req.query, req.conversation_history)
        results = retriever.retrieve(db, search_query, req.max_results)
        answer = answerer.answer(req.query, req.conversation_history, results, language)
    except Exception as e:
        logger.exception("[chat] retrieve-and-answer failed")
        return _error_response(500, language, f"{e.__class__.__name__}: {e}")

    return ChatResponse(
        success=True,
        answer=answer.text,
        references=answer.references,
        results_count=len(results),
        search_type=results[0].search_type if results else SEARCH_NONE,
        language=language,
    )
