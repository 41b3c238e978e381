from __future__ import annotations

import base64
import io
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from PIL import Image

DEFAULT_MIME = "image/jpeg"

ImagePayload = Union[str, bytes]


def load_image(path: str) -> bytes:
    """
    Read an image file as raw bytes, after checking Pillow can identify it.
    """
    raw = Path(path).read_bytes()
    with Image.open(io.BytesIO(raw)) as img:
        img.verify()
    return raw


def sniff_mime(raw: bytes) -> str:
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
    except OSError:
        return DEFAULT_MIME
    return Image.MIME.get(fmt or "", DEFAULT_MIME)


def to_data_uri(image: ImagePayload) -> str:
    """
    Normalize an image payload to a data URI:
    - "data:..." strings pass through
    - other strings are bare base64 (assumed JPEG)
    - bytes are encoded, mime type sniffed
    """
    if isinstance(image, (bytes, bytearray)):
        raw = bytes(image)
        b64 = base64.b64encode(raw).decode("utf-8")
        return f"data:{sniff_mime(raw)};base64,{b64}"
    if image.startswith("data:"):
        return image
    return f"data:{DEFAULT_MIME};base64,{image}"


def read_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def write_json(path: str, data: Any) -> None:
    """Write via a temp file + rename so readers never see a half-written file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=p.name, suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            json.dump(data, fp, indent=2)
        os.replace(tmp, p)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
