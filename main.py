"""SiteVoice - construction-site voice note processing service."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from sitevoice.config import get_settings
from sitevoice.database import create_engine, create_session_factory
from sitevoice.routers import process_router
from sitevoice.services.http_client import RetryingHttpClient
from sitevoice.services.persistence import PersistenceGateway
from sitevoice.services.pipeline import VoiceNotePipeline

# Logging
logger = logging.getLogger("sitevoice")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)

    engine = create_engine(settings)
    client = httpx.AsyncClient(follow_redirects=True)
    app.state.pipeline = VoiceNotePipeline(
        settings,
        PersistenceGateway(create_session_factory(engine)),
        RetryingHttpClient.from_settings(client, settings),
    )
    logger.info("SiteVoice started (env=%s, default provider=%s)", settings.APP_ENV, settings.DEFAULT_PROVIDER)
    try:
        yield
    finally:
        await client.aclose()
        await engine.dispose()


app = FastAPI(title="SiteVoice", version="0.1.0", lifespan=lifespan)


# --- CORS middleware ---
class CORSMiddleware(BaseHTTPMiddleware):
    """Browser clients call the trigger directly; preflights are answered without reaching a route."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = CORS_HEADERS["Access-Control-Allow-Origin"]
        return response


app.add_middleware(CORSMiddleware)

# API routers
app.include_router(process_router)


# --- Exception handler: unhandled errors -> JSON ---
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return the trigger's error shape for anything a route did not handle."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__}, headers=CORS_HEADERS)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "sitevoice", "version": "0.1.0"}
