"""FastAPI entrypoint for decide/execute/transcribe/speech and trace endpoints."""

from __future__ import annotations

import base64
import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvoice.actions import Action
from docvoice.agent.classifier import ActionClassifier
from docvoice.agent.composer import ResponseComposer
from docvoice.agent.executor import PlanExecutor
from docvoice.agent.fallback import KeywordActionClassifier, TemplateResponseComposer
from docvoice.agent.llm import create_chat_model
from docvoice.agent.pipeline import VoicePipeline
from docvoice.config import Settings
from docvoice.errors import DocVoiceError
from docvoice.obs.logs import configure_logging
from docvoice.obs.tracing import TraceStore
from docvoice.retrieval.groundx import GroundXClient
from docvoice.speech.synthesizer import create_synthesizer
from docvoice.speech.transcriber import OpenAITranscriber

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> VoicePipeline:
    """Wire collaborators from settings; missing keys fall back to offline parts."""
    llm = create_chat_model(settings.openai_api_key, settings.chat_config())
    speech_config = settings.speech_config()
    retrieval_config = settings.retrieval_config()

    synthesizer = create_synthesizer(
        speech_config,
        openai_api_key=settings.openai_api_key,
        elevenlabs_api_key=settings.elevenlabs_api_key,
    )
    transcriber = (
        OpenAITranscriber(api_key=settings.openai_api_key, config=speech_config)
        if settings.openai_api_key
        else None
    )
    retriever = (
        GroundXClient(settings.groundx_api_key, config=retrieval_config)
        if settings.groundx_api_key
        else None
    )

    return VoicePipeline(
        classifier=ActionClassifier(llm) if llm is not None else KeywordActionClassifier(),
        composer=ResponseComposer(llm) if llm is not None else TemplateResponseComposer(),
        executor=PlanExecutor(
            retriever,
            settings.groundx_bucket_id,
            llm=llm,
            synthesizer=synthesizer,
            retrieval_config=retrieval_config,
        ),
        synthesizer=synthesizer,
        transcriber=transcriber,
        trace_store=TraceStore(),
    )


class DecideRequest(BaseModel):
    text: str | None = None
    context: Any = None


class PlanRequest(BaseModel):
    """Flag-based plan as produced by `/decide-and-respond`."""

    model_config = ConfigDict(extra="ignore")

    scroll_up: bool | None = None
    scroll_down: bool | None = None
    next_page: bool | None = None
    previous_page: bool | None = None
    snap_page: bool | None = None
    find_fig: bool | None = None
    find_pdf: bool | None = None
    non_determ: bool | None = None
    query: str | None = None
    context: Any = None
    page: int | None = None
    pdf: str | None = None
    does_follow_up: bool = False


class SpeechRequest(BaseModel):
    text: str | None = None


_settings = Settings()
configure_logging(_settings.log_level)
_pipeline = build_pipeline(_settings)

app = FastAPI(title="Voice Document Navigator", version="0.1.0")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _encode_audio(audio: bytes | None) -> str | None:
    if audio is None:
        return None
    return base64.b64encode(audio).decode("ascii")


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return _error(500, "Internal server error")


@app.get("/health")
def health() -> dict[str, Any]:
    trace_store = _pipeline.trace_store
    return {
        "status": "ok",
        "llm_configured": isinstance(_pipeline.classifier, ActionClassifier),
        "classifier_mode": (
            "llm" if isinstance(_pipeline.classifier, ActionClassifier) else "deterministic"
        ),
        "retrieval_configured": _pipeline.executor.retriever is not None,
        "speech_configured": _pipeline.synthesizer is not None,
        "trace_count": len(trace_store.list_recent(limit=1000)) if trace_store else 0,
    }


@app.post("/decide-and-respond")
def decide_and_respond(request: DecideRequest) -> Any:
    if not request.text or not request.text.strip():
        return _error(400, "Text input is required")
    try:
        result = _pipeline.decide_and_respond(request.text, request.context)
    except DocVoiceError:
        logger.exception("Error in decide-and-respond")
        return _error(500, "Failed to process request")

    return {
        "plan": result.action.to_plan(),
        "immediate_response": result.verbal.immediate_response,
        "audio": _encode_audio(result.audio),
        "audio_media_type": _pipeline.audio_media_type if result.audio else None,
        "trace_id": result.trace_id,
    }


@app.post("/execute-plan")
def execute_plan(request: PlanRequest) -> Any:
    try:
        action = Action.from_plan(request.model_dump())
    except (ValidationError, ValueError) as exc:
        return _error(400, f"Invalid plan: {exc}")
    try:
        result = _pipeline.execute_plan(action)
    except DocVoiceError:
        logger.exception("Error executing plan")
        return _error(500, "Failed to execute plan")

    return {
        "plan": result.action.to_plan(),
        "followup_response": result.followup_text,
        "followup_audio": _encode_audio(result.followup_audio),
        "audio_media_type": _pipeline.audio_media_type if result.followup_audio else None,
        "degraded": result.degraded,
        "trace_id": result.trace_id,
    }


@app.post("/transcribe")
def transcribe(audio: UploadFile | None = File(default=None)) -> Any:
    if audio is None:
        return _error(400, "No audio file provided")
    try:
        text = _pipeline.transcribe(
            audio.file.read(), filename=audio.filename or "speech.ogg"
        )
    except DocVoiceError:
        logger.exception("Transcription error")
        return _error(500, "Transcription failed")
    return {"text": text}


@app.post("/speech")
def speech(request: SpeechRequest) -> Response:
    if not request.text or not request.text.strip():
        return _error(400, "Text input is required")
    try:
        audio = _pipeline.speak(request.text)
    except DocVoiceError:
        logger.exception("Speech synthesis error")
        return _error(500, "Speech synthesis failed")
    return Response(content=audio, media_type=_pipeline.audio_media_type)


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    trace_store = _pipeline.trace_store
    records = trace_store.list_recent(limit=limit) if trace_store else []
    return {"items": [asdict(record) for record in records]}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str) -> dict[str, Any]:
    if _pipeline.trace_store is None:
        raise HTTPException(status_code=404, detail=f"Trace not found: {trace_id}")
    try:
        record = _pipeline.trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Trace not found: {trace_id}") from exc
    return asdict(record)


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    if _pipeline.trace_store is None:
        return {}
    return _pipeline.trace_store.summary()
