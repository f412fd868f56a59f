import base64
import binascii
import re
from typing import Optional, Tuple

DEFAULT_MIME_TYPE = "image/jpeg"
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*?);base64,(?P<data>.*)$", re.S)


class EvidenceDecodeError(ValueError):
    pass


def decode_evidence(image: str, mime_type: Optional[str] = None) -> Tuple[bytes, str]:
    """
    Turn the uploaded evidence string into the exact image bytes.

    Accepts bare base64 or a base64 data URL (what a browser FileReader
    produces). Decoding is strict: whitespace is tolerated, any other
    non-alphabet character is an error, so what the classifier receives
    is byte-for-byte what was uploaded.
    """
    if not isinstance(image, str) or not image.strip():
        raise EvidenceDecodeError("Empty evidence")

    s = image.strip()
    url_mime = None
    m = _DATA_URL.match(s)
    if m:
        url_mime = m.group("mime")
        s = m.group("data")
    elif s.startswith("data:"):
        raise EvidenceDecodeError("Data URL must be base64-encoded")

    s = "".join(s.split())
    try:
        raw = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EvidenceDecodeError(f"Invalid base64 evidence: {e}") from e

    if not raw:
        raise EvidenceDecodeError("Empty evidence")

    mime = (mime_type or url_mime or DEFAULT_MIME_TYPE).strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise EvidenceDecodeError(f"Unsupported image type: {mime}")
    return raw, mime
