"""Invite code generation."""

from __future__ import annotations

import secrets

from orgtasks_shared.schemas.organizations import INVITE_CODE_ALPHABET, INVITE_CODE_LENGTH


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Draw a code uniformly from A-Z0-9 using the system CSPRNG."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    """Canonical form used for lookups: trimmed and upper-cased."""
    return code.strip().upper()


def is_well_formed(code: str) -> bool:
    return len(code) == INVITE_CODE_LENGTH and all(c in INVITE_CODE_ALPHABET for c in code)
