import secrets

# 256 bits of entropy, rendered as 64 hex characters
KEY_BYTES = 32

MASK_VISIBLE_CHARS = 8
MASK_SUFFIX = "..."


def generate_api_key() -> str:
    """Generate a new opaque API key.

    Uses the OS entropy source through ``secrets``. If that source is not
    available the error propagates; there is no weaker fallback.
    """
    return secrets.token_hex(KEY_BYTES)


def mask_api_key(raw: str) -> str:
    """Reduce a credential to a loggable fragment.

    Keys longer than 8 characters keep only their first 8 characters plus
    ``...``; shorter values (including empty) are returned unchanged.
    """
    if len(raw) > MASK_VISIBLE_CHARS:
        return raw[:MASK_VISIBLE_CHARS] + MASK_SUFFIX
    return raw
