"""Filename sanitization for recipient folders.

Maps an arbitrary string (usually a recipient address) to a single safe path
segment. Distinct inputs can map to the same segment, e.g. ``a:b@x.com`` and
``a|b@x.com`` both become ``a-b@x.com``.
"""

import re

ILLEGAL_RE = re.compile(r'[/?<>\\:*|"]')
CONTROL_RE = re.compile(r"[\x00-\x1f\x80-\x9f]")
RESERVED_RE = re.compile(r"^\.+$")
WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)
WINDOWS_TRAILING_RE = re.compile(r"[. ]+$")

MAX_FILENAME_BYTES = 255


def _truncate_utf8(value: str, max_bytes: int) -> str:
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def _sanitize(value: str, replacement: str) -> str:
    sanitized = ILLEGAL_RE.sub(replacement, value)
    sanitized = CONTROL_RE.sub(replacement, sanitized)
    sanitized = RESERVED_RE.sub(replacement, sanitized)
    sanitized = WINDOWS_RESERVED_RE.sub(replacement, sanitized)
    sanitized = WINDOWS_TRAILING_RE.sub(replacement, sanitized)
    return _truncate_utf8(sanitized, MAX_FILENAME_BYTES)


def sanitize_filename(value: str, replacement: str = "-") -> str:
    """Sanitize a string for use as a single file or directory name.

    Illegal characters, control characters, reserved names and trailing dots
    or spaces are replaced, and the result is capped at 255 UTF-8 bytes. The
    replaced output is sanitized once more with an empty replacement so an
    unsafe replacement string cannot leak through.

    Examples:
        sanitize_filename("user@example.com") -> 'user@example.com'
        sanitize_filename("../etc/passwd") -> '..-etc-passwd'
        sanitize_filename("..") -> '-'
    """
    output = _sanitize(value, replacement)
    if replacement == "":
        return output
    return _sanitize(output, "")
