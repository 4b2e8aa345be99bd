from __future__ import annotations

import re
from typing import Iterable

from fastapi import HTTPException, status

from jobtrack.core.config import settings

COMMON_WEAK_PASSWORDS = frozenset(
    {
        "password",
        "password1",
        "password123",
        "12345678",
        "123456789",
        "qwerty123",
        "iloveyou",
        "letmein1",
        "welcome1",
        "passw0rd",
        "trustno1",
        "zaq12wsx",
    }
)

# Shorter fragments match too much to be meaningful.
MIN_PERSONAL_FRAGMENT = 3


def _personal_fragments(email: str | None, names: Iterable[str | None]) -> tuple[list[str], list[str]]:
    local_part = (email or "").strip().lower().partition("@")[0]
    email_parts = [local_part] if len(local_part) >= MIN_PERSONAL_FRAGMENT else []
    name_parts = [
        n.strip().lower() for n in names if n and len(n.strip()) >= MIN_PERSONAL_FRAGMENT
    ]
    return email_parts, name_parts


def evaluate_password(
    password: str,
    *,
    email: str | None = None,
    names: Iterable[str | None] = (),
) -> list[str]:
    """
    Violation codes, in a stable order; empty when the password is acceptable.

    min_length, letter, number, contains_email, contains_name, denylist_common
    """
    pw = password or ""
    lowered = pw.lower()
    min_length = max(int(settings.PASSWORD_MIN_LENGTH or 0), 1)
    email_parts, name_parts = _personal_fragments(email, names)

    checks = [
        ("min_length", len(pw) < min_length),
        ("letter", re.search(r"[A-Za-z]", pw) is None),
        ("number", re.search(r"[0-9]", pw) is None),
        ("contains_email", any(p in lowered for p in email_parts)),
        ("contains_name", any(p in lowered for p in name_parts)),
        ("denylist_common", lowered in COMMON_WEAK_PASSWORDS),
    ]
    return [code for code, failed in checks if failed]


def ensure_strong_password(
    password: str,
    *,
    email: str | None = None,
    names: Iterable[str | None] = (),
) -> None:
    violations = evaluate_password(password, email=email, names=names)
    if not violations:
        return
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": "Password does not meet requirements.",
            "details": {"code": "WEAK_PASSWORD", "violations": violations},
        },
    )
