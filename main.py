import os
import time
import uuid
import json
import logging
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from core.cache import TTLChartCache
from core.config import load_settings
from core.errors import ChartProxyError, ClientInputError, build_error, error_from_exception
from routes import chart, system
from routes import time as time_routes

# -----------------------------
# Load env
# -----------------------------
load_dotenv()
settings = load_settings()

# -----------------------------
# Logging (structured-ish)
# -----------------------------
LOG_EXTRAS = (
    "request_id",
    "path",
    "status",
    "latency_ms",
    "endpoint",
    "payload",
    "upstream_status",
    "cache_key",
    "source",
    "field",
)

logger = logging.getLogger("chart-proxy")
logger.setLevel(settings.log_level)
handler = logging.StreamHandler()
handler.setLevel(settings.log_level)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "msg": record.getMessage(),
        }
        for k in LOG_EXTRAS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


handler.setFormatter(JsonFormatter())
logger.handlers = [handler]
logger.propagate = False

# -----------------------------
# App
# -----------------------------
app = FastAPI(
    title="Western Chart Proxy",
    description="Translates simple birth data into AstrologyAPI chart calls and normalizes the result",
    version=system.SERVICE_VERSION,
)

app.state.chart_cache = TTLChartCache(
    retention_seconds=settings.cache_ttl_days * 24 * 3600,
    maxsize=settings.cache_maxsize,
)
app.state.upstream_transport = None

# -----------------------------
# CORS
# -----------------------------
origins = os.getenv("ALLOWED_ORIGINS", "*")
allowed = [o.strip() for o in origins.split(",")] if origins != "*" else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=allowed != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Middleware: request_id + logging
# -----------------------------
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    start = time.time()

    request.state.request_id = request_id

    try:
        response = await call_next(request)
    except Exception:
        latency_ms = int((time.time() - start) * 1000)
        logger.error(
            "unhandled_exception",
            exc_info=True,
            extra={"request_id": request_id, "path": request.url.path, "status": 500, "latency_ms": latency_ms},
        )
        err = build_error(500, "Internal server error.")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "data": None, "error": err.to_response(), "detail": err.message, "request_id": request_id},
            headers={"X-Request-Id": request_id},
        )

    latency_ms = int((time.time() - start) * 1000)
    logger.info(
        "request",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": latency_ms,
        },
    )
    response.headers["X-Request-Id"] = request_id
    return response


# -----------------------------
# Exception handlers
# -----------------------------
def _error_response(request: Request, status_code: int, err) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    payload = {
        "ok": False,
        "data": None,
        "error": err.to_response(),
        "detail": err.message,
    }
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=payload)


@app.exception_handler(ChartProxyError)
async def chart_proxy_error_handler(request: Request, exc: ChartProxyError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.kind.value,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "path": request.url.path,
            "status": exc.status_code,
            "field": getattr(exc, "field", None),
            "upstream_status": getattr(exc, "upstream_status", None),
        },
    )
    return _error_response(request, exc.status_code, error_from_exception(exc))


def _client_error_from_validation(exc: RequestValidationError) -> ClientInputError:
    errors = exc.errors()
    if not errors:
        return ClientInputError("body", "Invalid request body.")
    first = errors[0]
    if first.get("type") == "json_invalid":
        return ClientInputError("body", "Invalid request body: not valid JSON.")
    names = [str(part) for part in first.get("loc", ()) if part != "body" and not isinstance(part, int)]
    field_name = names[-1] if names else "body"
    if first.get("type") == "missing":
        return ClientInputError(field_name, f"{field_name} is required.")
    message = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
    return ClientInputError(field_name, f"Invalid {field_name}: {message}")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return await chart_proxy_error_handler(request, _client_error_from_validation(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    err = build_error(exc.status_code, str(exc.detail))
    return _error_response(request, exc.status_code, err)


# -----------------------------
# Routes
# -----------------------------
app.include_router(system.router)
app.include_router(chart.router)
app.include_router(time_routes.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
