from __future__ import annotations
import re, time
from typing import Mapping, Optional

from .errors import ValidationError

MAX_LIMIT = 100
UNKNOWN_IDENTITY = "unknown"
CAT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
CATEGORY_IDS_RE = re.compile(r"^[0-9]+(,[0-9]+)*$")
INT_RE = re.compile(r"^-?[0-9]+$")
HAS_BREEDS_VALUES = {"0", "1", "true", "false"}

def now_ms() -> int:
    """Wall-clock milliseconds, the unit rate windows are kept in."""
    return int(time.time() * 1000)

def parse_int_param(name: str, raw: Optional[str], default: int, *, minimum: int = 0,
                    maximum: Optional[int] = None) -> int:
    """
    Parse a query-string integer; missing/blank falls back to default.
    Raises ValidationError for non-numeric or out-of-range values.
    """
    if raw is None or not raw.strip():
        return default
    # ASCII digits only, no "1_0" or non-ASCII numerals
    if not INT_RE.match(raw.strip()):
        raise ValidationError(f"Invalid {name} parameter")
    value = int(raw.strip())
    if value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name.capitalize()} cannot exceed {maximum}")
    return value

def parse_category_ids(raw: Optional[str]) -> Optional[str]:
    """Comma-separated integer ids, whitespace tolerated; None/blank -> no filter."""
    if raw is None:
        return None
    cleaned = ",".join(p.strip() for p in raw.split(",") if p.strip())
    if not cleaned:
        return None
    if not CATEGORY_IDS_RE.match(cleaned):
        raise ValidationError("Invalid category_ids parameter")
    return cleaned

def parse_has_breeds(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    value = raw.strip().lower()
    if value not in HAS_BREEDS_VALUES:
        raise ValidationError("Invalid has_breeds parameter")
    return value

def validate_cat_id(cat_id: Optional[str]) -> str:
    """True identifier or ValidationError; blank ids never reach upstream."""
    if not cat_id or not CAT_ID_RE.match(cat_id):
        raise ValidationError("Invalid cat ID")
    return cat_id

def client_identity(headers: Mapping[str, str]) -> str:
    """
    Rate-limit bucket key: the raw X-Forwarded-For value.
    Callers without one all share the "unknown" bucket.
    """
    forwarded = (headers.get("x-forwarded-for") or "").strip()
    return forwarded or UNKNOWN_IDENTITY
