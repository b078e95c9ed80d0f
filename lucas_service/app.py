import logging
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from lucas_service import settings
from lucas_service.lucas_task import InvalidRequest, validate_request
from lucas_service.lucas_task import calculate as calculate_lucas

logger = logging.getLogger(__name__)

INDEX_FILE = Path(__file__).resolve().parent / "static" / "index.html"

app = FastAPI(title="Lucas latency demo")

REQUESTS_TOTAL = Counter("lucas_requests_total", "Total HTTP requests", ["path", "status"])
PROCESS_MS = Gauge("lucas_process_time_ms", "Compute time of the last request", ["env"])
PROCESS_SECONDS = Histogram("lucas_process_time_seconds", "Compute time per request")


def _bad_request(path: str) -> Response:
    REQUESTS_TOTAL.labels(path=path, status="400").inc()
    return Response(status_code=400)


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    logger.warning("Rejected %s: %s", request.url.path, exc)
    return _bad_request(request.url.path)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("Unparseable body on %s", request.url.path)
    return _bad_request(request.url.path)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    REQUESTS_TOTAL.labels(path=request.url.path, status="500").inc()
    return Response(status_code=500)


@app.post("/calculate")
def calculate(payload: Any = Body(None)):
    # Plain def: runs in the worker thread pool and blocks it until done
    n = validate_request(payload)
    res = calculate_lucas(n)
    PROCESS_MS.labels(env=settings.ENV).set(res.process_time)
    PROCESS_SECONDS.observe(res.process_time / 1000)
    REQUESTS_TOTAL.labels(path="/calculate", status="200").inc()
    logger.info("Computed n=%d in %.3f ms", n, res.process_time)
    return JSONResponse(res.model_dump())


@app.get("/")
def index():
    return FileResponse(INDEX_FILE, media_type="text/html")


@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def main() -> None:
    settings.setup_logging()
    logger.info("Starting Lucas service on %s:%d (env=%s)", settings.HOST, settings.PORT, settings.ENV)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
