"""Identity scheme for stored files.

Every operation that addresses a file (upload, download, delete) goes through
``derive_key`` so the same logical file always maps to the same record key and
blob name, whichever entry point was used.
"""

import re
from typing import Tuple

from file_server.errors import InvalidNameError

# Anything outside this set is dropped from caller-supplied names
_DISALLOWED_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.]")

KEY_SEPARATOR = "-"


def sanitize_name(raw_name: str) -> str:
    """Strip every character outside ``[A-Za-z0-9_.]`` from ``raw_name``.

    Raises:
        InvalidNameError: If nothing usable is left, or only dots are left
            (``.`` and ``..`` cannot name a blob in a directory-backed store).
    """
    name = _DISALLOWED_NAME_CHARS.sub("", raw_name or "")
    if not name:
        raise InvalidNameError(f"File name '{raw_name}' is empty after sanitization")
    if not name.strip("."):
        raise InvalidNameError(f"File name '{raw_name}' consists only of dots")
    return name


def make_key(owner_id: str, name: str) -> str:
    """Composite record key for an already-sanitized name."""
    return f"{owner_id}{KEY_SEPARATOR}{name}"


def derive_key(owner_id: str, raw_name: str) -> Tuple[str, str]:
    """Derive ``(key, sanitized_name)`` from an owner id and a raw file name.

    >>> derive_key("u1", "my file#1.txt")
    ('u1-myfile1.txt', 'myfile1.txt')
    """
    name = sanitize_name(raw_name)
    return make_key(owner_id, name), name
