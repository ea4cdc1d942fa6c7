import hashlib
from typing import Optional


def secret_fingerprint(secret: Optional[str]) -> str:
    """Stable, low-leak identifier for a secret, safe to put in logs."""
    if not secret:
        return "<empty>"
    digest = hashlib.sha256(secret.encode("utf-8")).hexdigest()[:12]
    return f"len={len(secret)} sha256={digest} head={secret[:4]}"
