"""Six-digit validation codes for public brief approval."""

import hmac
import secrets
from typing import Optional

from ..models import Brief


CODE_LENGTH = 6


def issue() -> str:
    """New zero-padded numeric code from a CSPRNG."""
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


def is_well_formed(code: Optional[str]) -> bool:
    """Exactly CODE_LENGTH ASCII digits."""
    return (
        isinstance(code, str)
        and len(code) == CODE_LENGTH
        and code.isascii()
        and code.isdigit()
    )


def verify(brief: Brief, supplied_code: Optional[str]) -> bool:
    """Exact match against the brief's stored code. A missing or malformed code never matches."""
    if not is_well_formed(brief.validation_code) or not is_well_formed(supplied_code):
        return False
    return hmac.compare_digest(brief.validation_code.encode("ascii"), supplied_code.encode("ascii"))
