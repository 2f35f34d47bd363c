"""
Short Code Generator

Produces candidate short codes over the alphabet [a-z0-9]:
- caller-supplied codes are checked and passed through
- otherwise a random code is drawn from the OS CSPRNG

Random bytes are mapped onto the 36-symbol alphabet by rejection sampling:
bytes in [252, 256) are discarded so that ``byte % 36`` is exactly uniform
(252 = 7 * 36). Plain ``byte % 36`` would favour the first four symbols.

Uniqueness is not checked here; the store's unique constraint decides.
"""

import re
import secrets
import string
from typing import Optional

from lnkz.core.exceptions import InvalidInputError
from lnkz.core.setting import settings

ALPHABET = string.ascii_lowercase + string.digits
ALPHABET_SIZE = len(ALPHABET)

# Largest multiple of the alphabet size that fits in a byte
_ACCEPT_BELOW = 256 - (256 % ALPHABET_SIZE)


class CodeGenerator:
    """Creates and checks short codes of a fixed length."""

    def __init__(self, length: Optional[int] = None, token_bytes=secrets.token_bytes):
        self.length = length if length is not None else settings.SHORT_CODE_LENGTH
        self._token_bytes = token_bytes
        self._pattern = re.compile(rf"^[a-z0-9]{{{self.length}}}$")

    def is_valid_format(self, code: str) -> bool:
        return isinstance(code, str) and bool(self._pattern.match(code))

    def generate(self, requested_code: Optional[str] = None) -> str:
        """
        Return the requested code if well-formed, else a fresh random code.

        Raises:
            InvalidInputError: If ``requested_code`` is given but malformed
        """
        if requested_code is not None:
            if not self.is_valid_format(requested_code):
                raise InvalidInputError(
                    str(requested_code),
                    f"Requested code is not {self.length} characters of [a-z0-9]",
                    public_message=f"Short code must be {self.length} lowercase letters or digits",
                )
            return requested_code
        return self.random_code()

    def random_code(self) -> str:
        chars = []
        while len(chars) < self.length:
            # Over-draw so one call usually suffices
            for byte in self._token_bytes(self.length * 2):
                if byte < _ACCEPT_BELOW:
                    chars.append(ALPHABET[byte % ALPHABET_SIZE])
                    if len(chars) == self.length:
                        break
        return "".join(chars)
