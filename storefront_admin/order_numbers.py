import logging
import random
import string
from datetime import datetime
from typing import Callable, Optional

from storefront_admin.config import current_time

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"
TOKEN_LENGTH = 6
TOKEN_ALPHABET = string.ascii_uppercase + string.digits


def random_token(length: int = TOKEN_LENGTH) -> str:
    """Uppercase base36 token; uniqueness is checked by the caller, not guaranteed here."""
    return "".join(random.choices(TOKEN_ALPHABET, k=length))


class OrderNumberGenerator:
    """Generates ``ORD-<token>-<YYYYMMDD>`` numbers not already taken."""

    def __init__(
        self,
        exists: Callable[[str], bool],
        clock: Optional[Callable[[], datetime]] = None,
        token_source: Optional[Callable[[int], str]] = None,
    ):
        self.exists = exists
        self.clock = clock or current_time
        self.token_source = token_source or random_token

    def generate(self) -> str:
        while True:
            candidate = f"{ORDER_NUMBER_PREFIX}-{self.token_source(TOKEN_LENGTH)}-{self.clock():%Y%m%d}"
            if not self.exists(candidate):
                return candidate
            logger.warning(f"Order number {candidate} already taken, generating another")
