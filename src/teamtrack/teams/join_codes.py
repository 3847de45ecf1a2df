"""Join code generation for teams.

Codes are short numeric strings a player can type on a phone keypad,
generated server-side with a cryptographic random source and unique
across all teams.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamtrack.db.models import Team

JOIN_CHARSET = string.digits
JOIN_CODE_LENGTH = 6
MAX_ATTEMPTS = 10


def generate_join_code(length: int = JOIN_CODE_LENGTH) -> str:
    """Generate a random join code with no leading zero."""
    first = secrets.choice(JOIN_CHARSET[1:])
    return first + "".join(secrets.choice(JOIN_CHARSET) for _ in range(length - 1))


def normalize_join_code(code: str) -> str:
    """Strip whitespace and separators players tend to type ("123 456", "123-456")."""
    return "".join(ch for ch in code if ch.isalnum()).upper()


async def generate_unique_join_code(db: AsyncSession, length: int = JOIN_CODE_LENGTH) -> str:
    """Generate a join code that no existing team uses."""
    for _ in range(MAX_ATTEMPTS):
        code = generate_join_code(length)
        existing = await db.execute(select(Team.id).where(Team.join_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    raise RuntimeError(f"Failed to generate unique join code after {MAX_ATTEMPTS} attempts")
