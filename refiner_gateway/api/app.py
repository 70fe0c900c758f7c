"""
HTTP surface of the gateway.

POST /refine, POST /chat, GET /app-update, GET /health and GET /.
Build the application with create_app(); uvicorn can load it with
`uvicorn --factory refiner_gateway.api.app:create_app`.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from ..config.loader import GatewayConfig, default_gateway_config
from ..core.prompts import Mode
from ..core.quota import QuotaTracker
from ..core.router import UNAVAILABLE_MESSAGE, GatewayError, GenerationRequest, RequestRouter
from ..core.versioning import check_update
from ..log import get_logger, set_trace_id, setup_logging
from ..sdk import build_providers
from ..storage.repository import QuotaStore, get_store

logger = get_logger(__name__)

# Response field carrying the generated text, per endpoint
RESULT_FIELDS = {
    Mode.REFINE: "refinedText",
    Mode.CHAT: "chatText",
}
_FIELDS_BY_PATH = {"/refine": "refinedText", "/chat": "chatText"}


class TextRequest(BaseModel):
    text: Optional[str] = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from 'Bearer <token>'; anything else counts as no credential."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def build_router(
    config: GatewayConfig,
    store: Optional[QuotaStore] = None,
    environ: Optional[Mapping[str, str]] = None
) -> RequestRouter:
    """Wire providers, quota tracker and router from configuration."""
    quota = QuotaTracker(
        store=store if store is not None else get_store(),
        daily_limit=config.quota.daily_limit,
    )
    return RequestRouter(
        providers=build_providers(config.providers, environ),
        quota=quota,
        shared_keys_for_credentialed=config.fallback.shared_keys_for_credentialed,
    )


def create_app(
    config: Optional[GatewayConfig] = None,
    router: Optional[RequestRouter] = None
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Gateway configuration (built-in defaults when omitted)
        router: Pre-built router; built from config when omitted

    Returns:
        Configured FastAPI app
    """
    config = config or default_gateway_config()
    setup_logging(config.log_level)
    router = router or build_router(config)

    app = FastAPI(title="Refiner Gateway", version="1.0.0")
    app.state.config = config
    app.state.router = router

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        trace_id = set_trace_id(request.headers.get("X-Request-Id"))
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["X-Request-Id"] = trace_id
        logger.info(
            "event=http.request | method=%s path=%s status=%d duration_ms=%d",
            request.method, request.url.path, response.status_code, duration_ms
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        logger.info("event=http.invalid_body | path=%s errors=%s", request.url.path, exc.errors())
        content: Dict[str, Any] = {"error": "Missing 'text' in body"}
        field = _FIELDS_BY_PATH.get(request.url.path)
        if field:
            content[field] = ""
        return JSONResponse(status_code=400, content=content)

    def _generate(mode: Mode, payload: Optional[TextRequest], authorization: Optional[str], device_id: Optional[str]):
        field = RESULT_FIELDS[mode]
        raw_text = (payload.text if payload is not None else None) or ""
        request = GenerationRequest(
            text=raw_text,
            mode=mode,
            credential=parse_bearer(authorization),
            device_id=device_id,
        )

        # /refine always hands the client something to display
        fallback_text = raw_text.strip() if mode == Mode.REFINE else ""

        try:
            result = app.state.router.route(request)
        except GatewayError as e:
            logger.info("event=%s.rejected | status=%d reason=%s", mode.value, e.status_code, e.message)
            return JSONResponse(status_code=e.status_code, content={"error": e.message, field: fallback_text})
        except Exception:
            logger.exception("event=%s.unexpected_error", mode.value)
            return JSONResponse(status_code=502, content={"error": UNAVAILABLE_MESSAGE, field: fallback_text})

        body: Dict[str, Any] = {field: result.text}
        if result.notification:
            body["notification"] = result.notification
        return body

    @app.post("/refine")
    def refine(
        payload: Optional[TextRequest] = None,
        authorization: Optional[str] = Header(default=None),
        x_device_id: Optional[str] = Header(default=None),
    ):
        return _generate(Mode.REFINE, payload, authorization, x_device_id)

    @app.post("/chat")
    def chat(
        payload: Optional[TextRequest] = None,
        authorization: Optional[str] = Header(default=None),
        x_device_id: Optional[str] = Header(default=None),
    ):
        return _generate(Mode.CHAT, payload, authorization, x_device_id)

    @app.get("/app-update")
    def app_update(version: str = "1.0.0"):
        info = check_update(version, app.state.config.update)
        return {
            "updateAvailable": info.update_available,
            "latestVersion": info.latest_version,
            "forceUpdate": info.force_update,
            "updateUrl": info.update_url,
            "changelog": info.changelog,
            "timestamp": _timestamp(),
        }

    @app.get("/health")
    def health():
        return {
            "status": "OK",
            "model": app.state.config.primary.model,
            "timestamp": _timestamp(),
        }

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return (
            "Refiner AI Backend is LIVE\n"
            f"Model: {app.state.config.primary.model}\n"
            "Endpoints: POST /refine | POST /chat | GET /app-update | GET /health\n"
            "Auth: optional 'Authorization: Bearer <your-gemini-key>'; "
            "without it send 'X-Device-Id' for the daily free tier\n"
        )

    return app
