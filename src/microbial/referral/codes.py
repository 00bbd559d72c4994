"""Short public slugs for campaigns and referral codes."""

import secrets

from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, Session

# Lowercase letters and digits without the easily confused 0, o, 1, l, i
CODE_ALPHABET = "abcdefghjkmnpqrstuvwxyz23456789"
CODE_LENGTH = 8
MAX_ATTEMPTS = 10


def generate_code(length: int = CODE_LENGTH) -> str:
    """Generate a random, URL-safe slug."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def unique_code(session: Session, column: InstrumentedAttribute) -> str:
    """Generate a slug not yet present in ``column``.

    Gives up checking after a few attempts and returns the last candidate;
    the column's unique constraint still rejects a real collision.
    """
    code = generate_code()
    for _ in range(MAX_ATTEMPTS):
        taken = session.scalar(select(column).where(column == code).limit(1))
        if taken is None:
            break
        code = generate_code()
    return code
