"""Stable encoding of structured storage keys.

A storage key is any JSON value. Two keys name the same resource when their
canonical JSON serialization is identical, so dict ordering does not matter.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pynagare.exceptions import NagareConfigError

#: Number of hex characters kept from the digest.
ENCODED_KEY_LENGTH = 8


def canonical_json(value: Any) -> str:
    """Serialize *value* to compact JSON with sorted object keys.

    Parameters
    ----------
    value : Any
        A JSON-serializable scalar, list, or dict.

    Returns
    -------
    str
        Deterministic JSON text.

    Raises
    ------
    NagareConfigError
        If *value* is not JSON-serializable.
    """
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise NagareConfigError(f"Storage key is not JSON-serializable: {value!r}") from exc


def encode_key(key: Any) -> str:
    """Hash a structured key into a short lowercase hex string.

    The digest is used for cache sizing and routing, not for security;
    collisions are tolerated.
    """
    digest = hashlib.md5(canonical_json(key).encode("utf-8"), usedforsecurity=False).hexdigest()
    return digest[:ENCODED_KEY_LENGTH]
