"""
Random token generation for short URLs.
"""

import secrets
import string


class TokenGenerator:
    """
    Generates fixed-length random tokens from a 62-symbol alphabet.

    62^6 is about 5.7e10 tokens, so collisions are rare but possible:
    uniqueness is enforced by the store, not here.
    Stateless apart from the length, safe to share between requests.
    """

    ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

    def __init__(self, length: int = 6):
        if length < 1:
            raise ValueError(f"Token length must be at least 1, got {length}")
        self.length = length

    def generate(self) -> str:
        """Generate a random token of the configured length"""
        return ''.join(secrets.choice(self.ALPHABET) for _ in range(self.length))
