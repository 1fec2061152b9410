import base64
import os
import re
import time
from typing import Optional

ALLOWED_PHOTO_TYPES = {"image/jpeg", "image/png"}
ALLOWED_PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png"}
PHOTO_ERROR_MESSAGE = "Please choose a JPG or PNG image."

_TRAIT_SPLIT = re.compile(r"[,;]+")


def parse_characteristics(raw: Optional[str]) -> list[str]:
    """
    Split the free-text characteristics field into traits.
    "Kind, funny;; Brave " -> ["kind", "funny", "brave"]
    """
    if not raw or not raw.strip():
        return []
    traits = (part.strip().lower() for part in _TRAIT_SPLIT.split(raw))
    return [t for t in traits if t]


def is_allowed_photo(filename: Optional[str], mimetype: Optional[str]) -> bool:
    """
    Accept a photo when its declared media type OR its filename extension
    names a JPEG/PNG image. Either one matching is enough, so a mislabeled
    "photo.png" and an oddly named "image/png" upload both pass.
    """
    declared = (mimetype or "").split(";")[0].strip().lower()
    if declared in ALLOWED_PHOTO_TYPES:
        return True
    _, ext = os.path.splitext(filename or "")
    return ext.lower() in ALLOWED_PHOTO_EXTENSIONS


def guess_photo_type(filename: Optional[str], mimetype: Optional[str]) -> str:
    """Media type to embed the photo with, preferring the declared one."""
    declared = (mimetype or "").split(";")[0].strip().lower()
    if declared in ALLOWED_PHOTO_TYPES:
        return declared
    _, ext = os.path.splitext(filename or "")
    return "image/png" if ext.lower() == ".png" else "image/jpeg"


def to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode()
    return f"data:{mime_type};base64,{encoded}"


def from_data_url(url: str) -> Optional[bytes]:
    """Decode a base64 data: URL, None if it is not one."""
    if not url.startswith("data:") or ";base64," not in url:
        return None
    return base64.b64decode(url.split(";base64,", 1)[1])


def export_filename(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"birthday-card-{now_ms}.png"
