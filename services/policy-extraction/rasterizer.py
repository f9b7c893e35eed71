"""PDF rasterization via poppler's pdftoppm.

The extraction engine only accepts images, so every PDF page is rendered to
a standalone PNG. The binary is resolved once at startup and injected into
the orchestrator; each invocation works in its own temporary directory,
which is removed on every exit path.
"""

import logging
import os
import re
import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from pathlib import Path

from config import settings
from errors import ConversionError

logger = logging.getLogger(__name__)

PAGE_PREFIX = "page"
HEADER_SEARCH_BYTES = 1024
_PAGE_FILE = re.compile(rf"^{PAGE_PREFIX}-(\d+)\.png$")


class PdfRasterizer:
    """Renders PDF bytes to ordered PNG page images."""

    def __init__(
        self,
        binary: str | None,
        long_edge: int | None = None,
        timeout: int | None = None,
    ):
        self._binary = binary
        self._long_edge = long_edge if long_edge is not None else settings.RASTER_LONG_EDGE
        self._timeout = timeout if timeout is not None else settings.RASTER_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls) -> "PdfRasterizer":
        """Locate pdftoppm (PDFTOPPM_PATH, else PATH) and build the rasterizer."""
        return cls(binary=locate_pdftoppm(settings.PDFTOPPM_PATH))

    @property
    def available(self) -> bool:
        return self._binary is not None

    @property
    def binary(self) -> str | None:
        return self._binary

    def rasterize(self, pdf_bytes: bytes) -> Iterator[bytes]:
        """Render every page; returns an iterator of PNG bytes in page order.

        Raises ConversionError if the tool is missing, fails, times out, or
        produces no pages.
        """
        pages = self._render(pdf_bytes)
        return iter(pages)

    def _render(self, pdf_bytes: bytes) -> list[bytes]:
        binary = self._require_binary()

        # %PDF may follow a preamble, but only within the first 1 KiB
        if b"%PDF" not in pdf_bytes[:HEADER_SEARCH_BYTES]:
            raise ConversionError("Input is not a PDF document (missing %PDF header)")

        with tempfile.TemporaryDirectory(prefix="rasterize-") as workdir:
            source = Path(workdir) / "source.pdf"
            source.write_bytes(pdf_bytes)
            output_root = Path(workdir) / PAGE_PREFIX

            cmd = [
                binary,
                "-png",
                "-scale-to", str(self._long_edge),
                str(source),
                str(output_root),
            ]
            try:
                result = subprocess.run(cmd, capture_output=True, timeout=self._timeout)
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"pdftoppm timed out after {self._timeout}s") from e
            except OSError as e:
                raise ConversionError(f"Could not run pdftoppm: {e}") from e

            if result.returncode != 0:
                stderr = result.stderr.decode(errors="replace").strip()
                raise ConversionError(
                    f"pdftoppm exited with status {result.returncode}: {stderr[:300] or 'no output'}"
                )

            page_files = ordered_page_files(Path(workdir))
            if not page_files:
                raise ConversionError("pdftoppm produced no pages")

            pages = [path.read_bytes() for path in page_files]

        logger.info(
            "Rasterized PDF: %d bytes -> %d pages (%d bytes)",
            len(pdf_bytes), len(pages), sum(len(p) for p in pages),
        )
        return pages

    def _require_binary(self) -> str:
        if self._binary is None:
            raise ConversionError(
                "PDF rasterizer not available: pdftoppm (poppler-utils) was not found. "
                "Install poppler-utils or set PDFTOPPM_PATH."
            )
        if not os.access(self._binary, os.X_OK):
            raise ConversionError(f"PDF rasterizer not executable: {self._binary}")
        return self._binary


def locate_pdftoppm(configured: str = "") -> str | None:
    """Resolve the pdftoppm binary; None if it cannot be found."""
    if configured:
        found = shutil.which(configured)
        if found is None:
            logger.warning("PDFTOPPM_PATH=%s is not an executable", configured)
        return found
    return shutil.which("pdftoppm")


def ordered_page_files(directory: Path) -> list[Path]:
    """Return pdftoppm output files sorted by page number (page-2 before page-10)."""
    numbered = []
    for path in directory.iterdir():
        match = _PAGE_FILE.match(path.name)
        if match:
            numbered.append((int(match.group(1)), path))
    return [path for _, path in sorted(numbered)]
