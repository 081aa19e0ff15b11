from datetime import date
from typing import Any, Optional
import logging
import time

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn
import yaml

from ..assistant.chat import answer_question
from ..assistant.llm import build_client
from ..config.runtime_config import RuntimeConfig, load_runtime_config
from ..config.settings import settings
from ..insights.generator import run_insights
from ..logs import log_error
from ..store.supabase import TransactionStore

# Configure logging
logger = logging.getLogger(__name__)

app = FastAPI(title="finassist")


class ChatRequest(BaseModel):
    message: Optional[str] = None
    userId: Optional[str] = None


class InsightsRequest(BaseModel):
    userId: Optional[str] = None
    today: Optional[date] = None


def get_store() -> Optional[TransactionStore]:
    """Store for the request, or None when Supabase is not configured."""
    try:
        return TransactionStore()
    except ValueError as e:
        log_error("Supabase store unavailable", e)
        return None


def get_llm_client() -> Any:
    if not settings.openai_api_key:
        return None
    return build_client()


def get_runtime_config() -> Optional[RuntimeConfig]:
    """Runtime config for the request, or None when the YAML is invalid."""
    try:
        return load_runtime_config()
    except (ValueError, yaml.YAMLError) as e:
        log_error("Runtime config could not be loaded", e)
        return None


def _require(store: Optional[TransactionStore], cfg: Optional[RuntimeConfig]) -> None:
    if store is None:
        raise RuntimeError("Supabase URL and service role key are not configured")
    if cfg is None:
        raise RuntimeError("Runtime config is invalid")


@app.get("/health")
async def health():
    """Health check endpoint to verify server is running."""
    return {"status": "ok", "timestamp": time.time()}


@app.post("/api/chat")
async def chat(
    body: ChatRequest,
    store: Optional[TransactionStore] = Depends(get_store),
    llm_client: Any = Depends(get_llm_client),
    cfg: Optional[RuntimeConfig] = Depends(get_runtime_config),
):
    if not body.message or not body.userId:
        return JSONResponse({"error": "Message dan userId diperlukan"}, status_code=400)
    try:
        _require(store, cfg)
        reply = await answer_question(body.message, body.userId, store, llm_client, cfg)
    except Exception as e:
        log_error("Chat API error", e)
        return JSONResponse(
            {"error": "Terjadi kesalahan. Silakan coba lagi.", "details": str(e)},
            status_code=500,
        )
    return reply.model_dump(mode="json")


@app.post("/api/insights")
async def insights(
    body: Optional[InsightsRequest] = None,
    store: Optional[TransactionStore] = Depends(get_store),
    llm_client: Any = Depends(get_llm_client),
    cfg: Optional[RuntimeConfig] = Depends(get_runtime_config),
):
    body = body or InsightsRequest()
    try:
        _require(store, cfg)
        return await run_insights(
            store,
            llm_client,
            cfg,
            today=body.today,
            user_ids=[body.userId] if body.userId else None,
        )
    except Exception as e:
        log_error("Insights API error", e)
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)


def run_server(host: str = "0.0.0.0", port: Optional[int] = None):
    port = port or settings.api_port
    logger.info(f"Starting finassist API on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")
