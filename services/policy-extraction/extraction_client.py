"""HTTP client for the multimodal extraction engine.

Talks to an OpenAI-compatible chat-completions endpoint with httpx. All page
images of one document go out in a single request so the engine can
correlate fields across pages. No retry happens here; the orchestrator owns
retry policy.
"""

import logging
import time

import httpx

from config import settings
from errors import ServiceConfigurationError, ServiceUnavailable

logger = logging.getLogger(__name__)


class ExtractionClient:
    """Async client for the extraction engine with explicit timeouts."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._base_url = (base_url or settings.EXTRACTION_BASE_URL).rstrip("/")
        self._model = model or settings.EXTRACTION_MODEL
        self._max_tokens = max_tokens if max_tokens is not None else settings.EXTRACTION_MAX_TOKENS

        read_timeout = timeout if timeout is not None else settings.EXTRACTION_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.EXTRACTION_CONNECT_TIMEOUT

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=60.0,
                pool=30.0,
            ),
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def close(self):
        await self._client.aclose()

    async def extract(self, images: list[str], instruction: str) -> str:
        """Send the instruction plus every page image; return the raw reply text.

        Raises ServiceConfigurationError (no credentials) before any network
        I/O, or ServiceUnavailable for transport and HTTP failures.
        """
        if not self._api_key:
            raise ServiceConfigurationError("OPENAI_API_KEY not configured")
        if not images:
            raise ValueError("at least one image is required")

        payload = self._build_payload(images, instruction)
        start = time.monotonic()
        content = await self._send(payload)
        logger.info(
            "Extraction engine replied in %dms (%d images, %d chars)",
            int((time.monotonic() - start) * 1000), len(images), len(content),
        )
        return content

    def _build_payload(self, images: list[str], instruction: str) -> dict:
        parts: list[dict] = [{"type": "text", "text": instruction}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image, "detail": "high"}}
            for image in images
        )
        return {
            "model": self._model,
            "temperature": 0,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": parts}],
        }

    async def _send(self, payload: dict) -> str:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            resp = await self._client.post("/chat/completions", json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Extraction engine timed out: %s", e)
            raise ServiceUnavailable(f"Extraction service timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("Extraction engine request failed: %s", e)
            raise ServiceUnavailable(f"Cannot reach extraction service: {e}") from e

        if resp.status_code != 200:
            body = resp.text[:500]
            logger.error("Extraction engine error %d: %s", resp.status_code, body)
            raise ServiceUnavailable(f"Extraction service error {resp.status_code}: {body}")

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ServiceUnavailable("Extraction service returned an unexpected response body") from e

        if not content:
            raise ServiceUnavailable("No response content from extraction service")
        return content

    def health(self) -> dict:
        """Report configuration status without sending inference traffic."""
        return {
            "configured": self.configured,
            "base_url": self._base_url,
            "model": self._model,
        }
