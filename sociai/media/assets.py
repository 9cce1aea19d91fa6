"""
Media payload helpers: data URLs, public hosting and reference images.
"""
import base64
import binascii
import io
import uuid
from typing import List, Optional, Tuple

import requests
from PIL import Image, UnidentifiedImageError

from sociai.shared.blob_store import upload_media
from sociai.shared.config import get_studio_config
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.specs.common.enums import MediaType
from sociai.specs.models.domain import BrandProfile
from sociai.specs.models.generation import ReferenceAsset

MAX_REFERENCE_ASSETS = 3

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "video/mp4": "mp4",
}


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(url: str) -> Optional[Tuple[bytes, str]]:
    if not url.startswith("data:") or ";base64," not in url:
        return None
    header, payload = url[5:].split(";base64,", 1)
    try:
        return base64.b64decode(payload, validate=True), header or "application/octet-stream"
    except (binascii.Error, ValueError):
        return None


def publish_media(data: bytes, mime_type: str, *, media_type: MediaType, trace_id: Optional[str] = None) -> str:
    """Return a displayable URL for rendered bytes.

    Public blob URL when blob storage is configured, otherwise a data URL.
    """
    cfg = get_studio_config()
    if not cfg.blob_enabled:
        return to_data_url(data, mime_type)
    ext = _EXTENSIONS.get(mime_type, "bin")
    blob_name = f"generated/{media_type.value}/{trace_id or 'adhoc'}-{uuid.uuid4().hex[:8]}.{ext}"
    url = upload_media(blob_name, data, mime_type)
    log_info(trace_id, "media:published", blob=blob_name, size=len(data))
    return url


def normalize_reference(data: bytes, max_side: int) -> Tuple[bytes, str]:
    """Downscale a reference image and re-encode it as PNG (alpha) or JPEG."""
    img = Image.open(io.BytesIO(data))
    img.thumbnail((max_side, max_side))
    buf = io.BytesIO()
    if img.mode in ("RGBA", "LA", "P"):
        img.convert("RGBA").save(buf, format="PNG")
        return buf.getvalue(), "image/png"
    img.convert("RGB").save(buf, format="JPEG", quality=90)
    return buf.getvalue(), "image/jpeg"


def _fetch(url: str) -> Optional[bytes]:
    decoded = parse_data_url(url)
    if decoded is not None:
        return decoded[0]
    if not url.startswith(("http://", "https://")):
        return None
    r = requests.get(url, timeout=15)
    r.raise_for_status()
    return r.content


def load_reference_assets(brand: BrandProfile, trace_id: Optional[str] = None) -> List[ReferenceAsset]:
    """Collect up to three reference images: the logo first, then style references."""
    max_side = get_studio_config().reference_max_side
    sources: List[Tuple[str, str]] = []
    if brand.logoUrl:
        sources.append(("logo", brand.logoUrl))
    sources.extend(("style", url) for url in brand.styleReferenceUrls)

    assets: List[ReferenceAsset] = []
    for role, url in sources:
        if len(assets) >= MAX_REFERENCE_ASSETS:
            break
        try:
            raw = _fetch(url)
            if raw is None:
                continue
            data, mime = normalize_reference(raw, max_side)
        except (requests.RequestException, UnidentifiedImageError, OSError) as exc:
            log_warning(trace_id, "media:reference_skipped", role=role, error=str(exc))
            continue
        assets.append(ReferenceAsset(data=data, mimeType=mime, role=role))
    return assets
