"""
JWT token service for authentication.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass
class TokenPayload:
    """JWT token payload structure."""

    sub: str  # Subject (user ID)
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    email: str | None = None


class TokenService:
    """Service for creating and validating JWT tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 30,
        refresh_token_expire_days: int = 7,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes
        self._refresh_token_expire_days = refresh_token_expire_days

    @property
    def access_token_ttl_seconds(self) -> int:
        return self._access_token_expire_minutes * 60

    def _encode(self, user_id: str, token_type: str, ttl: timedelta, **claims) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "exp": now + ttl,
            "iat": now,
            "type": token_type,
        }
        payload.update({k: v for k, v in claims.items() if v})
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(self, user_id: str, email: str | None = None) -> str:
        """
        Create an access token.

        Args:
            user_id: User ID to encode in the token
            email: Optional email to include

        Returns:
            Encoded JWT access token
        """
        return self._encode(
            user_id,
            ACCESS_TOKEN_TYPE,
            timedelta(minutes=self._access_token_expire_minutes),
            email=email,
        )

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(
            user_id,
            REFRESH_TOKEN_TYPE,
            timedelta(days=self._refresh_token_expire_days),
        )

    def create_token_pair(self, user_id: str, email: str | None = None) -> tuple[str, str]:
        """Create both access and refresh tokens. Returns (access_token, refresh_token)."""
        return self.create_access_token(user_id, email), self.create_refresh_token(user_id)

    def decode_token(self, token: str) -> TokenPayload | None:
        """
        Decode and validate a JWT token.

        Args:
            token: JWT token to decode

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )

            for field in ("sub", "exp", "type"):
                if field not in payload:
                    raise JWTError(f"Missing required field: {field}")

            return TokenPayload(
                sub=payload["sub"],
                exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
                iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
                type=payload["type"],
                email=payload.get("email"),
            )
        except JWTError:
            return None

    def verify_access_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == ACCESS_TOKEN_TYPE:
            return payload
        return None

    def verify_refresh_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == REFRESH_TOKEN_TYPE:
            return payload
        return None
