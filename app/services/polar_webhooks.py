"""
Polar webhook signature verification.
"""
import hashlib
import hmac
from typing import Mapping, Optional

SIGNATURE_HEADERS = ("x-polar-signature", "webhook-signature")


def extract_signature(headers: Mapping[str, str]) -> Optional[str]:
    """Return the signature header value, preferring x-polar-signature"""
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return None


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """HMAC-SHA256 hex digest of the raw body, compared in constant time"""
    if not signature or not secret:
        return False
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected, signature.strip())
