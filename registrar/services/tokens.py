"""
JWT issuing and verification for user sessions.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from registrar.config import AuthConfig


class TokenService:
    """Issues and verifies HS256 bearer tokens."""

    def __init__(self, config: AuthConfig):
        self.config = config

    def create_token(self, subject: str) -> str:
        """Create a JWT token for the given subject (the user's email)."""
        now = datetime.now(timezone.utc)
        expire = now + timedelta(hours=self.config.jwt_expire_hours)

        payload = {
            "sub": subject,
            "iat": now,
            "exp": expire,
        }

        return jwt.encode(payload, self.config.jwt_secret, algorithm="HS256")

    def verify_token(self, token: str) -> Optional[str]:
        """
        Verify a JWT token.

        Args:
            token: The JWT token to verify

        Returns:
            The token subject if the token is valid, None otherwise.
        """
        if not self.config.jwt_secret:
            return None

        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=["HS256"])
        except jwt.PyJWTError:
            return None

        return payload.get("sub")

    def extract_token_from_header(self, authorization: Optional[str]) -> Optional[str]:
        """
        Extract JWT token from Authorization header.

        Expected format: "Bearer <token>"
        """
        if not authorization:
            return None

        parts = authorization.split()
        if len(parts) != 2:
            return None

        scheme, token = parts
        if scheme.lower() != "bearer":
            return None

        return token.strip() if token.strip() else None
