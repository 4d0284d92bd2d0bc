"""
State fingerprinting for change detection.
"""

import hashlib


def fingerprint(name: str, prompt: str) -> str:
    """
    Compute the SHA-256 hex digest of ``"{name}-{prompt}"``.
    
    The digest only depends on its inputs, so a fingerprint recorded before a
    controller restart still compares equal afterwards.
    """
    return hashlib.sha256(f"{name}-{prompt}".encode("utf-8")).hexdigest()
