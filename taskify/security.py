# taskify/security.py
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from taskify.errors import Unauthenticated

ALGORITHM = "HS256"
ACCESS_TOKEN_TTL = timedelta(days=30)
GUEST_TOKEN_TTL = timedelta(days=7)
# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
_BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify(self, plaintext: Optional[str], hashed: Optional[str]) -> bool:
        """Fails closed: no stored hash, no candidate or a malformed hash is a mismatch."""
        if not hashed or plaintext is None:
            return False
        try:
            return bcrypt.checkpw(_encode(plaintext), hashed.encode("ascii"))
        except ValueError:
            return False


class TokenIssuer:
    def __init__(self, secret: str, algorithm: str = ALGORITHM):
        self._secret = secret
        self._algorithm = algorithm

    def issue(self, user_id: str, ttl: timedelta = ACCESS_TOKEN_TTL) -> str:
        expire = datetime.now(timezone.utc) + ttl
        return jwt.encode({"sub": user_id, "exp": expire}, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            raise Unauthenticated("Not authorized, token failed")
        user_id = payload.get("sub")
        if not user_id:
            raise Unauthenticated("Not authorized, token failed")
        return str(user_id)


def random_token(nbytes: int = 20) -> str:
    return secrets.token_hex(nbytes)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
