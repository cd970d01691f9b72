"""Identifier generation for target documents."""

import secrets
import string
import time

_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 7

PROJECT_PREFIX = "proj"
COLLABORATION_PREFIX = "collab"


def generate_id(prefix: str) -> str:
    """
    Generate an id of the form ``<prefix>_<epoch ms>_<7 random chars>``.

    Example:
        >>> generate_id("proj")  # doctest: +SKIP
        'proj_1735689600000_k3x9a1q'
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


__all__ = ["PROJECT_PREFIX", "COLLABORATION_PREFIX", "generate_id"]
