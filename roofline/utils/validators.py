"""Deterministic validators and sanitizers used by the services and clients."""

from __future__ import annotations

import re

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    cleaned = cleaned[:max_len]
    return cleaned


def sanitize_filename(name: str) -> str:
    """Basename with anything outside ``[a-zA-Z0-9.-]`` replaced by ``_``."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    return _UNSAFE_NAME_CHARS.sub("_", base) or "file"


def phone_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_phone(value: str | None) -> bool:
    """US numbers: ten digits, optionally prefixed with country code 1."""
    digits = phone_digits(value)
    return len(digits) == 10 or (len(digits) == 11 and digits.startswith("1"))


def is_valid_email(value: str | None) -> bool:
    return bool(value) and bool(_EMAIL_RE.match(sanitize_text(value)))
