# utils/content_types.py
from dataclasses import dataclass
from typing import Dict

CONTENT_TYPE_TAG = "Content-Type"
DEFAULT_CATEGORY = "other"

# Display colors keyed by full media type or by its primary type
CONTENT_TYPE_STYLES: Dict[str, int] = {
    "text/plain": 0x00ff00,
    "text/html": 0x32cd32,
    "text/javascript": 0x90ee90,
    "text": 0x00ff00,
    "image/jpeg": 0xff1493,
    "image/png": 0xff69b4,
    "image": 0xff00ff,
    "video": 0x00ffff,
    "audio": 0xffa500,
    "application/pdf": 0xff0000,
    "application/json": 0x0000ff,
    "application/zip": 0x8b4513,
    "application/x-tar": 0x8b4513,
    "application/gzip": 0x8b4513,
    "application/x-rar-compressed": 0x8b4513,
    "application/x-arweave-manifest+json": 0x00ff88,
    "application": 0x1e90ff,
    DEFAULT_CATEGORY: 0x808080,
}

@dataclass(frozen=True)
class ContentStyle:
    category: str
    color: int

def get_content_type(tags: Dict[str, str]) -> str:
    return tags.get(CONTENT_TYPE_TAG) or DEFAULT_CATEGORY

def classify(tags: Dict[str, str]) -> ContentStyle:
    """Map a transaction's Content-Type tag to a display category.

    Lookup order is the exact media type, then its primary type (the part
    before "/"), then the generic default.
    """
    content_type = get_content_type(tags)
    main_type = content_type.split("/")[0]
    for key in (content_type, main_type):
        if key in CONTENT_TYPE_STYLES:
            return ContentStyle(category=key, color=CONTENT_TYPE_STYLES[key])
    return ContentStyle(category=DEFAULT_CATEGORY, color=CONTENT_TYPE_STYLES[DEFAULT_CATEGORY])

def is_image(tags: Dict[str, str]) -> bool:
    return tags.get(CONTENT_TYPE_TAG, "").startswith("image/")
