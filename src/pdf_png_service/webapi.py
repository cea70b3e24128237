import asyncio
import base64
import binascii
import json
import logging
import os

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

try:
    from pdf_png_service import config
    from pdf_png_service.conversion import ConversionError, ConversionEvent, ConversionService, InputError, PipelineError
    from pdf_png_service.main import build_service
except ImportError:
    # Allow running as a script: `python src/pdf_png_service/webapi.py`
    import sys as _sys
    from pathlib import Path as _Path
    _sys.path.append(str(_Path(__file__).resolve().parents[1]))  # add ./src to sys.path
    from pdf_png_service import config
    from pdf_png_service.conversion import ConversionError, ConversionEvent, ConversionService, InputError, PipelineError
    from pdf_png_service.main import build_service

logger = logging.getLogger(__name__)

app = FastAPI(
    title="PDF to PNG Conversion Service",
    version=os.getenv("PDF_PNG_SERVICE_VERSION", "0.1.0"),
    description=(
        "Receives Cloud Storage object-finalize notifications, rasterizes "
        "uploaded PDFs to PNG and reports order completion."
    ),
)

SERVICE: ConversionService | None = None


@app.on_event("startup")
async def _startup() -> None:
    global SERVICE
    if SERVICE is None:
        SERVICE = build_service()


def _service() -> ConversionService:
    assert SERVICE is not None
    return SERVICE


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": "bad_request", "message": message})


def _ack(outcome: str, message: str, **extra: object) -> JSONResponse:
    # Failures are acknowledged with 200 too; anything else makes Pub/Sub redeliver forever
    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": outcome, "message": message, **extra})


async def _read_json(request: Request) -> object:
    try:
        return await request.json()
    except ValueError:
        return None


def _decode_push_data(data: str) -> dict[str, object]:
    """Decode the base64 JSON payload carried by a push subscription message."""
    try:
        decoded = base64.b64decode(data).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InputError(f"message data is not base64 encoded UTF-8: {e}") from e
    logger.info("Decoded Pub/Sub event data: %s", decoded)
    try:
        payload = json.loads(decoded)
    except ValueError as e:
        raise InputError(f"message data is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise InputError("message data is not a JSON object")
    return payload


async def _run(event: ConversionEvent, *, require_identifiers: bool) -> JSONResponse:
    try:
        result = await asyncio.to_thread(_service().process, event, require_identifiers=require_identifiers)
    except InputError as e:
        logger.error("%s", e)
        raise _bad_request(str(e))
    except ConversionError as e:
        logger.error("Error handling PDF->PNG for %s: %s", event.name, e.diagnostics())
        return _ack("failed", f"conversion failed for file: {event.name}")
    except PipelineError as e:
        logger.exception("Error handling PDF->PNG for %s", event.name)
        return _ack("failed", f"{type(e).__name__} for file: {event.name}")
    except Exception:
        # SDK faults outside the pipeline hierarchy (auth refresh, local I/O) are still acknowledged
        logger.exception("Unexpected error handling PDF->PNG for %s", event.name)
        return _ack("failed", f"unexpected error for file: {event.name}")
    if result is None:
        return _ack("ignored", "Not a PDF, ignoring.")
    return _ack("converted", f"Converted PDF to PNG for file: {event.name}", result=result.as_dict())


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.post("/")
async def receive_push(request: Request) -> JSONResponse:
    """Pub/Sub push endpoint.

    Body: ``{"message": {"data": base64(JSON), "attributes": {...}}, "subscription": "..."}``
    where the decoded JSON is a storage object descriptor. Responds 400 for a
    missing message or a file name without ``(order)(item)``; every other
    outcome, failures included, is acknowledged with 200.
    """
    body = await _read_json(request)
    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, dict) or not message.get("data"):
        logger.error("No pubsub message received")
        raise _bad_request("No pubsub message received")

    try:
        payload = _decode_push_data(str(message["data"]))
        event = ConversionEvent.from_object(payload, default_bucket=config.SOURCE_BUCKET)
    except InputError as e:
        logger.error("Unusable Pub/Sub payload: %s", e)
        return _ack("ignored", str(e))

    return await _run(event, require_identifiers=True)


@app.post("/storage-events")
async def receive_storage_event(request: Request) -> JSONResponse:
    """Direct object-finalize delivery (object descriptor as the request body).

    File names without order identifiers are converted without order tracking.
    """
    body = await _read_json(request)
    if not isinstance(body, dict):
        raise _bad_request("expected a storage object descriptor")
    try:
        event = ConversionEvent.from_object(body, default_bucket=config.SOURCE_BUCKET)
    except InputError as e:
        raise _bad_request(str(e))
    return await _run(event, require_identifiers=False)


def run() -> None:
    """Run an ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("pdf_png_service.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
