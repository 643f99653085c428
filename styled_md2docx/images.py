"""Image acquisition and layout.

``ImagePipeline`` fetches remote or local images ahead of assembly, several at
a time, and reports each failure as ``None`` so one broken image never holds
up the others. Inline ``data:`` URLs are decoded by :func:`decode_data_url`.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import re
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from pathlib import Path
from typing import Iterable

import requests
from PIL import Image

from styled_md2docx.errors import RecoverableElementError, UnsupportedFormatError
from styled_md2docx.model import ImageData
from styled_md2docx.units import pixels_to_twips

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 6000
DEFAULT_MAX_HEIGHT = 8000
FALLBACK_ASPECT = 0.75
UNSUPPORTED_MIME_TYPES = frozenset({"image/webp"})

_DATA_URL_RE = re.compile(
    r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*?)(?P<base64>;base64)?,(?P<payload>.*)$",
    re.DOTALL | re.IGNORECASE,
)


def is_data_url(ref: str) -> bool:
    return ref.strip().lower().startswith("data:")


def is_remote(ref: str) -> bool:
    return ref.strip().lower().startswith(("http://", "https://"))


def image_info(data: bytes) -> tuple[int | None, int | None, str | None]:
    """Return ``(width, height, mime)`` of encoded image bytes, as far as Pillow can tell."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            mime = Image.MIME.get(img.format or "")
            return width, height, mime
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        LOGGER.debug("Could not read image bytes: %s", exc)
        return None, None, None


def check_mime(mime_type: str) -> str:
    mime_type = (mime_type or "").strip().lower()
    if mime_type in UNSUPPORTED_MIME_TYPES:
        raise UnsupportedFormatError(f"unsupported image format {mime_type}", "image")
    if not mime_type.startswith("image/"):
        raise RecoverableElementError(f"not an image: {mime_type or 'unknown type'}", "image")
    return mime_type


def decode_data_url(url: str, alt_text: str = "") -> ImageData:
    """Decode a ``data:image/...;base64,...`` URL.

    Raises :class:`UnsupportedFormatError` for WebP and
    :class:`RecoverableElementError` for anything that is not a decodable image.
    """
    match = _DATA_URL_RE.match(url.strip())
    if not match:
        raise RecoverableElementError("malformed data URL", "image")
    mime_type = check_mime(match.group("mime"))
    payload = match.group("payload")
    if not payload:
        raise RecoverableElementError("empty data URL payload", "image")
    if not match.group("base64"):
        raise RecoverableElementError("only base64 data URLs are supported", "image")
    try:
        data = base64.b64decode(re.sub(r"\s+", "", payload), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise RecoverableElementError(f"invalid base64 image data: {exc}", "image") from exc
    width, height, _ = image_info(data)
    if width is None:
        raise RecoverableElementError("undecodable image data", "image")
    return ImageData(mime_type=mime_type, data=data, width=width, height=height, alt_text=alt_text)


def fit_box(image: ImageData | None, max_width: int = DEFAULT_MAX_WIDTH,
            max_height: int = DEFAULT_MAX_HEIGHT) -> tuple[int, int]:
    """Return the ``(width, height)`` in twips an image should occupy.

    Without known dimensions the box is ``max_width`` wide at a 4:3 ratio.
    With them, the natural size is scaled down (never up) to fit both limits.
    """
    if image is None or not image.width or not image.height:
        return max_width, int(round(max_width * FALLBACK_ASPECT))
    width = pixels_to_twips(image.width)
    height = pixels_to_twips(image.height)
    scale = min(1.0, max_width / width, max_height / height)
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


class ImagePipeline:
    """Fetches images referenced by a document before it is assembled."""

    def __init__(self, base_dir: str | Path | None = None, timeout: float = 15,
                 max_workers: int = 4, allow_remote: bool = True,
                 session: requests.Session | None = None):
        self.base_dir = Path(base_dir) if base_dir else None
        self.timeout = timeout
        self.max_workers = max_workers
        self.allow_remote = allow_remote
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        """Close the HTTP session if this pipeline created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> ImagePipeline:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch(self, ref: str) -> ImageData | None:
        """Return the image behind *ref*, or ``None`` if it cannot be obtained."""
        ref = (ref or "").strip()
        if not ref:
            return None
        if is_data_url(ref):
            try:
                return decode_data_url(ref)
            except RecoverableElementError as exc:
                LOGGER.warning("Data URL image rejected: %s", exc)
                return None
        if is_remote(ref):
            return self._fetch_remote(ref)
        return self._read_local(ref)

    def fetch_all(self, refs: Iterable[str]) -> dict[str, ImageData | None]:
        """Fetch every distinct reference concurrently and wait for all of them."""
        unique = list(dict.fromkeys(ref for ref in refs if ref))
        if not unique:
            return {}
        results: dict[str, ImageData | None] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(unique)))) as pool:
            futures = {ref: pool.submit(self.fetch, ref) for ref in unique}
            for ref, future in futures.items():
                try:
                    results[ref] = future.result()
                except Exception as exc:  # one failed fetch must not sink the batch
                    LOGGER.warning("Image fetch for %s failed: %s", ref, exc)
                    results[ref] = None
        return results

    def _fetch_remote(self, url: str) -> ImageData | None:
        if not self.allow_remote:
            LOGGER.info("Remote images disabled, skipping %s", url)
            return None
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Could not download %s: %s", url, exc)
            return None
        header_mime = resp.headers.get("Content-Type", "").split(";")[0].strip()
        return self._to_image(resp.content, header_mime or mimetypes.guess_type(url)[0], url)

    def _read_local(self, ref: str) -> ImageData | None:
        path = Path(ref)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        try:
            data = path.read_bytes()
        except OSError as exc:
            LOGGER.warning("Could not read image %s: %s", path, exc)
            return None
        return self._to_image(data, mimetypes.guess_type(str(path))[0], ref)

    def _to_image(self, data: bytes, declared_mime: str | None, ref: str) -> ImageData | None:
        width, height, detected_mime = image_info(data)
        try:
            mime_type = check_mime(detected_mime or declared_mime or "")
        except RecoverableElementError as exc:
            LOGGER.warning("Image %s rejected: %s", ref, exc)
            return None
        if width is None:
            LOGGER.warning("Image %s rejected: undecodable image data", ref)
            return None
        return ImageData(mime_type=mime_type, data=data, width=width, height=height)
