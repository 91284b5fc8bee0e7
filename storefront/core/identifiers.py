import re
import time
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

_PRODUCT_ID_RE = re.compile(r"^PROD-(\d{8})-(\d+)$")
_SLUG_STRIP_RE = re.compile(r"[^\u4e00-\u9fa5a-z0-9\s-]")
_SLUG_COLLAPSE_RE = re.compile(r"[\s-]+")
_PATH_ID_RE = re.compile(r"/(\d+)\.html?$")


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_product_id(now: datetime | None = None) -> str:
    """Build a product id of the form PROD-YYYYMMDD-NNNNNN.

    The suffix is the last six digits of the millisecond timestamp.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"PROD-{now.strftime('%Y%m%d')}-{str(millis)[-6:]}"


def parse_product_id(product_id: str) -> dict | None:
    match = _PRODUCT_ID_RE.match(product_id)
    if not match:
        return None
    return {"date": match.group(1), "unique_part": match.group(2)}


def generate_slug(text: str) -> str:
    """URL-friendly slug that keeps CJK characters, ascii letters and digits."""
    slug = _SLUG_STRIP_RE.sub("", text.lower().strip())
    slug = _SLUG_COLLAPSE_RE.sub("-", slug).strip("-")
    return slug or f"product-{_now_ms()}"


def extract_external_id_from_url(url: str) -> str | None:
    """Pull the marketplace item id out of a listing URL.

    Handles ``item.htm?id=123`` style query strings and ``/item/123.htm``
    style paths. Returns None when neither is present or the URL is unusable.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    ids = parse_qs(parsed.query).get("id")
    if ids and ids[0]:
        return ids[0]

    match = _PATH_ID_RE.search(parsed.path)
    if match:
        return match.group(1)
    return None
