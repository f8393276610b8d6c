"""Deterministic finding identifiers."""

import hashlib

FINGERPRINT_LENGTH = 16


def finding_id(*parts: object) -> str:
    """Hash the discriminating fields of a finding into a stable hex id.

    ``None`` parts are rendered as empty strings so optional locations still
    hash the same way on every run.
    """
    raw = ":".join("" if p is None else str(p) for p in parts)
    return hashlib.sha256(raw.encode()).hexdigest()[:FINGERPRINT_LENGTH]
