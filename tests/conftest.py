from __future__ import annotations

import base64
import sys
from io import BytesIO
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from styled_md2docx.builders import ElementBuilders  # noqa: E402
from styled_md2docx.styles import StyleResolver  # noqa: E402


@pytest.fixture()
def styles() -> StyleResolver:
    return StyleResolver()


@pytest.fixture()
def builders(styles: StyleResolver) -> ElementBuilders:
    return ElementBuilders(styles)


def _encode(fmt: str, size: tuple[int, int]) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    """A 40x30 pixel PNG."""
    return _encode("PNG", (40, 30))


@pytest.fixture()
def png_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture()
def webp_data_url() -> str:
    return "data:image/webp;base64," + base64.b64encode(b"RIFF\x00\x00\x00\x00WEBPVP8 ").decode("ascii")


@pytest.fixture()
def truncated_png() -> bytes:
    """A PNG signature followed by a body cut short."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 10


@pytest.fixture()
def truncated_png_data_url(truncated_png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(truncated_png).decode("ascii")


@pytest.fixture()
def list_token() -> Callable[..., dict]:
    def _create(*items, ordered: bool = False, start: int = 1) -> dict:
        return {"type": "list", "ordered": ordered, "start": start, "items": list(items)}

    return _create


@pytest.fixture()
def markdown_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _create(content: str, name: str = "input.md") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _create
