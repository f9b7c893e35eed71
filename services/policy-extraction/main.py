"""FastAPI policy extraction service.

Accepts declaration-page uploads (PDF or image) and returns structured
policy data. PDFs are rasterized with pdftoppm; field extraction is
delegated to a multimodal engine.
Privacy: uploads are processed in memory (PDFs only touch a per-request
temporary directory) and neither images nor extracted values are logged.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse

from config import settings
from extraction import PolicyExtractor
from extraction_client import ExtractionClient
from models import ExtractionResult, UploadedFile
from rasterizer import PdfRasterizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.5

# Failure kind -> HTTP status; successful and classified results are 200
STATUS_CODES: dict[str, int] = {
    "validation": 400,
    "conversion": 422,
    "malformed_response": 502,
    "service_unavailable": 502,
    "configuration": 503,
    "internal": 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Resolve capabilities once at startup and share them across requests."""
    client = ExtractionClient()
    rasterizer = PdfRasterizer.from_settings()

    if rasterizer.available:
        logger.info("PDF rasterizer: %s", rasterizer.binary)
    else:
        logger.warning("pdftoppm not found; PDF uploads will fail until poppler-utils is installed")

    if not client.configured:
        logger.warning("OPENAI_API_KEY is empty; extraction requests will fail")

    app.state.client = client
    app.state.rasterizer = rasterizer
    app.state.extractor = PolicyExtractor(client, rasterizer)

    yield

    await client.close()


app = FastAPI(title="Policy Extraction Service", version="1.0.0", lifespan=lifespan)


@app.post("/api/extract-policy")
async def extract_policy(
    request: Request,
    pdf: UploadFile | None = File(None),
    files: list[UploadFile] | None = File(None),
):
    """Extract policy and coverage fields from one document (one or more files)."""
    uploads = ([pdf] if pdf is not None else []) + (files or [])
    extractor: PolicyExtractor = request.app.state.extractor

    if not uploads:
        return _respond(await extractor.extract([]))

    # Read at most one byte past the limit; the validator rejects anything that long
    read_limit = extractor.max_upload_bytes + 1
    received = [
        UploadedFile(
            filename=upload.filename or "upload",
            mime_type=upload.content_type or "",
            content=await upload.read(read_limit),
        )
        for upload in uploads
    ]

    # Log byte counts only, never content
    logger.info(
        "Processing extraction: files=%d total=%d bytes",
        len(received), sum(f.size for f in received),
    )

    result = await _run_until_disconnect(request, extractor.extract(received))
    if result is None:
        # Client is gone; nobody reads this response
        return JSONResponse(status_code=499, content={"detail": "Client disconnected"})
    return _respond(result)


@app.get("/health")
async def health(request: Request):
    """Return service status and capability availability."""
    return {
        "status": "healthy",
        "rasterizer_available": request.app.state.rasterizer.available,
        "extraction_configured": request.app.state.client.configured,
    }


async def _run_until_disconnect(request: Request, work) -> ExtractionResult | None:
    """Run ``work``; cancel it (and its in-flight engine call) if the client leaves."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected; cancelling extraction")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                return None
    finally:
        if not task.done():
            task.cancel()


def _respond(result: ExtractionResult) -> JSONResponse:
    status_code = STATUS_CODES.get(result.failure_kind, 200)
    return JSONResponse(status_code=status_code, content=result.to_response())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
