"""Content-addressable file identity."""

import hashlib


def fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of the raw bytes. Metadata never contributes."""
    return hashlib.sha256(data).hexdigest()
