"""Extraction orchestrator: validate, rasterize/encode, call engine, parse.

Every request produces exactly one ExtractionResult. Component failures are
converted to a failed envelope here; no exception escapes except
cancellation.
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from completeness import classify_missing
from config import Settings, settings
from encoding import encode_image
from errors import (
    ConversionError,
    ExtractionError,
    MalformedExtractionResponse,
    ServiceUnavailable,
    ValidationError,
)
from extraction_client import ExtractionClient
from models import (
    TOTAL_FIELDS,
    DocumentInfo,
    ExtractionResult,
    ExtractionStatus,
    UploadedFile,
)
from parsing import parse_extraction_reply
from preprocessing import normalize_image
from prompts import DECLARATION_PAGE_PROMPT
from rasterizer import PdfRasterizer
from validation import mime_category, normalize_mime, validate_file

logger = logging.getLogger(__name__)

NO_FIELDS_ERROR = "No policy fields could be extracted from the document"
UNEXPECTED_ERROR = "Unexpected extraction error"
DIAGNOSTIC_SPAN_CHARS = 200


class PolicyExtractor:
    """Runs the full pipeline for one logical document per call."""

    def __init__(
        self,
        client: ExtractionClient,
        rasterizer: PdfRasterizer,
        config: Settings = settings,
    ):
        self._client = client
        self._rasterizer = rasterizer
        self._config = config
        self._image_builders = {
            "pdf": self._pdf_images,
            "image": self._raster_images,
        }

    @property
    def max_upload_bytes(self) -> int:
        return self._config.MAX_UPLOAD_BYTES

    async def extract(self, files: list[UploadedFile]) -> ExtractionResult:
        """Extract policy data from one or more files treated as one document."""
        start = time.monotonic()
        document = DocumentInfo(
            id=f"doc_{uuid.uuid4().hex}",
            file_name=", ".join(f.filename for f in files),
            uploaded_at=_now_iso(),
        )

        try:
            self._validate(files)
            images = await self._collect_images(files)
            raw = await self._call_engine(images)
            snapshot = parse_extraction_reply(raw, self._config.LOW_LIABILITY_THRESHOLD)
        except MalformedExtractionResponse as e:
            logger.warning("Extraction reply unparseable: %s", e)
            span = e.span[:DIAGNOSTIC_SPAN_CHARS]
            return _failed(document, e, f"{e.summary}: {e}", notes=[f"Unparsed response excerpt: {span}"])
        except ValidationError as e:
            logger.info("Upload rejected: %s", e)
            return _failed(document, e, str(e))
        except ExtractionError as e:
            logger.error("Extraction failed (%s): %s", e.kind, e)
            return _failed(document, e, f"{e.summary}: {e}")
        except Exception:
            logger.exception("Unexpected extraction error")
            return ExtractionResult(
                status=ExtractionStatus.FAILED,
                document=document,
                extraction_id=_extraction_id(),
                error=UNEXPECTED_ERROR,
                failure_kind="internal",
            )

        status = classify_missing(snapshot.missing_fields, self._config.COMPLETENESS_THRESHOLD)
        logger.info(
            "Extraction %s: %d/%d fields in %dms",
            status.value,
            TOTAL_FIELDS - len(snapshot.missing_fields),
            TOTAL_FIELDS,
            int((time.monotonic() - start) * 1000),
        )

        return ExtractionResult(
            status=status,
            document=document,
            policy=snapshot.policy,
            coverages=snapshot.coverages,
            missing_fields=snapshot.missing_fields,
            notes=snapshot.notes,
            extraction_id=_extraction_id(),
            error=NO_FIELDS_ERROR if status is ExtractionStatus.FAILED else None,
        )

    def _validate(self, files: list[UploadedFile]):
        """Fail fast: the first invalid file rejects the whole submission."""
        if not files:
            raise ValidationError("No file provided")
        if len(files) > self._config.MAX_FILES:
            raise ValidationError(f"Too many files: at most {self._config.MAX_FILES} per request")

        for f in files:
            result = validate_file(f.mime_type, f.size, self._config.MAX_UPLOAD_BYTES)
            if not result.valid:
                message = result.error if len(files) == 1 else f"{f.filename}: {result.error}"
                raise ValidationError(message)

    async def _collect_images(self, files: list[UploadedFile]) -> list[str]:
        """Encode all files into one ordered image list (file order, then page order)."""
        images: list[str] = []
        for f in files:
            build = self._image_builders[mime_category(f.mime_type)]
            images.extend(await build(f))
        logger.info("Prepared %d page images from %d files", len(images), len(files))
        return images

    async def _pdf_images(self, f: UploadedFile) -> list[str]:
        pages = await asyncio.to_thread(self._rasterize_pages, f.content)
        return [encode_image(page, "image/png") for page in pages]

    def _rasterize_pages(self, pdf_bytes: bytes) -> list[bytes]:
        # StopIteration cannot cross asyncio.to_thread; it would leave the request pending
        try:
            return list(self._rasterizer.rasterize(pdf_bytes))
        except StopIteration as e:
            raise ConversionError("PDF rasterizer stopped without producing pages") from e

    async def _raster_images(self, f: UploadedFile) -> list[str]:
        mime = normalize_mime(f.mime_type)
        image = await asyncio.to_thread(normalize_image, f.content, mime, self._config.RASTER_LONG_EDGE)
        return [encode_image(image, mime)]

    async def _call_engine(self, images: list[str]) -> str:
        """Single engine call; retried only on ServiceUnavailable when configured."""
        attempts = max(1, self._config.EXTRACTION_RETRY_ATTEMPTS)
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ServiceUnavailable),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=self._config.EXTRACTION_RETRY_DELAY,
                exp_base=self._config.EXTRACTION_RETRY_BACKOFF,
                max=60,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Extraction service unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                attempts,
            ),
        ):
            with attempt:
                return await self._client.extract(images, DECLARATION_PAGE_PROMPT)
        raise ServiceUnavailable("Extraction service call was not attempted")


def _failed(
    document: DocumentInfo,
    error: ExtractionError,
    message: str,
    notes: list[str] | None = None,
) -> ExtractionResult:
    return ExtractionResult(
        status=ExtractionStatus.FAILED,
        document=document,
        notes=notes or [],
        extraction_id=_extraction_id(),
        error=message,
        failure_kind=error.kind,
    )


def _extraction_id() -> str:
    return f"extr_{uuid.uuid4().hex}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
