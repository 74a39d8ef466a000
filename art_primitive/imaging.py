import base64
import io
from typing import Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .config import GeometrizeError


def target_size(size: Tuple[int, int], width: Optional[int] = None,
                height: Optional[int] = None) -> Tuple[int, int]:
    """Requested W×H; a missing side keeps the aspect ratio."""
    w, h = size
    if width and height:
        return int(width), int(height)
    if width:
        return int(width), max(1, int(round(h * width / w)))
    if height:
        return max(1, int(round(w * height / h))), int(height)
    return w, h


def open_image(fp, width: Optional[int] = None,
               height: Optional[int] = None) -> Image.Image:
    """Decode *fp* (path or file object) as RGB, resized when asked."""
    try:
        img = Image.open(fp)
        img.load()
    except (OSError, UnidentifiedImageError) as exc:
        raise GeometrizeError(f"Cannot read image: {exc}") from None
    img = img.convert("RGB")
    size = target_size(img.size, width, height)
    if size != img.size:
        if size[0] < 1 or size[1] < 1:
            raise GeometrizeError(f"Invalid output size: {size[0]}x{size[1]}")
        img = img.resize(size, Image.LANCZOS)
    return img


def load_image(path: str, width: Optional[int] = None,
               height: Optional[int] = None) -> np.ndarray:
    return np.asarray(open_image(path, width, height))


def save_image(raster: np.ndarray, path: str) -> None:
    Image.fromarray(raster).save(path)


def to_png_base64(raster: np.ndarray) -> str:
    buf = io.BytesIO()
    Image.fromarray(raster).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()
