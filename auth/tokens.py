"""Bearer-token issuing and verification (HMAC-signed JWT)"""
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt


class AuthenticationError(Exception):
    """Raised when a bearer token is missing, invalid or expired"""


class TokenVerifier:
    """Verifies bearer tokens and resolves them to a user id

    The user id is read from the ``userId`` claim, falling back to ``sub``.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24 * 7) -> None:
        if not secret:
            raise ValueError("JWT secret must be set")
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def verify(self, token: str | None) -> str:
        """Return the user id carried by the token

        Raises:
            AuthenticationError: if the token is absent, malformed, expired or has no user id
        """
        if not token:
            raise AuthenticationError("No token provided")
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError("Invalid token") from e

        user_id = claims.get("userId") or claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no user id")
        return str(user_id)

    def create_access_token(self, user_id: str, expires_minutes: int | None = None) -> str:
        """Issue a signed token for ``user_id``"""
        now = datetime.now(timezone.utc)
        expires = now + timedelta(minutes=expires_minutes if expires_minutes is not None else self.expire_minutes)
        payload = {
            "userId": user_id,
            "sub": user_id,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Pull the token out of an ``Authorization: Bearer <token>`` header value"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None
