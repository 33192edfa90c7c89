import hashlib


def derive_cache_key(content: str, kind: str) -> str:
    """sha256 hex of "kind:content". No normalization: byte-identical content is required for a hit."""
    return hashlib.sha256(f"{kind}:{content}".encode("utf-8")).hexdigest()
