"""
Receipt identifiers.

Short, human-typeable codes drawn from an alphabet without the visually
ambiguous characters (0/O, 1/l/I/i, o). Randomness comes from
``secrets``, which samples uniformly without modulo bias.

Usage:
    from pointman.identifiers import generate, generate_unique

    code = generate()                                  # "Xk7pQ2mZ"
    code = generate_unique(lambda c: Receipt.objects.filter(identifier=c).exists())
"""

import logging
import secrets
from typing import Callable

from pointman.conf import pointman_settings
from pointman.exceptions import IdentifierExhausted
from pointman.utils import bounded_retry

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"


def generate(length: int | None = None) -> str:
    """Return a random identifier of ``length`` symbols (default RECEIPT_ID_LENGTH)."""
    if length is None:
        length = pointman_settings.RECEIPT_ID_LENGTH
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_unique(
    exists: Callable[[str], bool],
    max_attempts: int | None = None,
) -> str:
    """
    Generate an identifier that ``exists`` reports as unused.

    Args:
        exists: Storage check, True when the identifier is taken
        max_attempts: Attempts before giving up (default RECEIPT_ID_MAX_ATTEMPTS)

    Raises:
        IdentifierExhausted: If every attempt collided
    """
    if max_attempts is None:
        max_attempts = pointman_settings.RECEIPT_ID_MAX_ATTEMPTS

    identifier, attempts = bounded_retry(
        generate,
        lambda candidate: not exists(candidate),
        max_attempts,
    )
    if identifier is None:
        logger.warning("Receipt identifier space exhausted after %d attempts", attempts)
        raise IdentifierExhausted(attempts=attempts)
    return identifier
