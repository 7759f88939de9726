from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional

from jose import jwt
from passlib.context import CryptContext

from cropmgmt.config import Settings, settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)


def create_access_token(
    data: Dict[str, Any],
    issued_at: datetime,
    expires_at: datetime,
    config: Settings = settings,
) -> str:
    to_encode = data.copy()
    to_encode.update({"iss": config.JWT_ISSUER, "iat": issued_at, "exp": expires_at})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str, config: Settings = settings) -> Dict[str, Any]:
    """Check the signature and claim types only.

    Expiry is left to the caller because refresh checks use a different
    window than the ``exp`` claim. Raises ``jose.JWTError`` on failure.
    """
    return jwt.decode(
        token,
        config.JWT_SECRET,
        algorithms=[config.JWT_ALGORITHM],
        options={"verify_exp": False},
    )


@dataclass(frozen=True)
class Identity:
    """The caller, as read from a verified access token."""

    user_id: int
    role: Optional[str]
    username: Optional[str] = None
    email: Optional[str] = None
    scopes: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        return cls(
            user_id=int(claims["user_id"]),
            role=claims.get("role"),
            username=claims.get("username"),
            email=claims.get("email"),
            scopes=frozenset((claims.get("scope") or "").split()),
        )

    def has_role(self, code: str) -> bool:
        return f"ROLE_{code}" in self.scopes
