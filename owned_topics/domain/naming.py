"""Per-owner topic naming.

A qualified name is ``{owner}-{short_name}`` where ``owner`` is the caller's
id made safe for Kafka:

* ids made only of ASCII letters and digits are used as-is (``u1-orders``);
* any other id becomes ``_`` followed by the lowercase, unpadded base32 of
  its UTF-8 bytes, so e-mail addresses and UUIDs work too.

Kafka treats ``.`` and ``_`` as the same character when it checks for
colliding topic names, so neither form may contain ``.``; short names are
limited to letters, digits and ``_``. Neither part contains the separator
``-``, so every owner gets a namespace no other owner can reach.
"""
from __future__ import annotations

import base64
import re

SEPARATOR = "-"
ENCODED_PREFIX = "_"
MAX_TOPIC_LENGTH = 249  # Kafka's limit

_PLAIN_OWNER_RE = re.compile(r"[A-Za-z0-9]+")
_SHORT_NAME_RE = re.compile(r"[A-Za-z0-9_]+")


def owner_namespace(owner_id: str) -> str:
    """Return the Kafka-safe form of *owner_id*; injective over all strings."""
    if not owner_id:
        raise ValueError("owner id must not be empty")
    if _PLAIN_OWNER_RE.fullmatch(owner_id):
        return owner_id
    encoded = base64.b32encode(owner_id.encode("utf-8")).decode("ascii")
    return ENCODED_PREFIX + encoded.rstrip("=").lower()


def resolve(owner_id: str, short_name: str) -> str:
    """Return the broker-qualified topic name for *short_name* owned by *owner_id*.

    Raises
    ------
    ValueError
        If *short_name* is empty or carries characters outside
        ``[A-Za-z0-9_]``, or the result is longer than Kafka allows.
        Short names are validated upstream, so this signals a caller bug.
    """
    if not short_name or not _SHORT_NAME_RE.fullmatch(short_name):
        raise ValueError(f"invalid short name: {short_name!r}")
    qualified = f"{owner_namespace(owner_id)}{SEPARATOR}{short_name}"
    if len(qualified) > MAX_TOPIC_LENGTH:
        raise ValueError(f"qualified name exceeds {MAX_TOPIC_LENGTH} characters")
    return qualified
