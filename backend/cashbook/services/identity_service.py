# Overview: Identifier generation for new catalog, ledger, debt and bill records.

from __future__ import annotations

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 7


def generate_id() -> str:
    """
    Collision-resistant string id: "<epoch millis>_<7 random base-36 chars>".

    Ids sort roughly by creation time; the random suffix keeps ids minted in the
    same millisecond apart.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{millis}_{suffix}"
