# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: handoff verification codes.

A code is a 4-digit decimal string in [1000, 9999], drawn fresh for every accept.
It proves that requester and deliverer met in person; it is not a secret key.
"""

import random
import re
import secrets
from typing import Optional

CODE_MIN = 1000
CODE_MAX = 9999

_CODE_PATTERN = re.compile(r"[0-9]{4}")


def is_well_formed(code: Optional[str]) -> bool:
    """True for exactly four ASCII digits. Leading zeros are allowed."""
    return isinstance(code, str) and _CODE_PATTERN.fullmatch(code) is not None


class VerificationCodeGenerator:
    """Draws uniform codes from an injectable random source."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or secrets.SystemRandom()

    def generate(self) -> str:
        return str(self._rng.randint(CODE_MIN, CODE_MAX))
