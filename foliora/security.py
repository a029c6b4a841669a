"""
Bearer credential verification.

The identity provider issues signed JWTs; a verified token yields the
caller's email (the principal). Route code never inspects tokens itself,
it depends on ``get_principal`` in ``foliora.api.dependencies``.
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from loguru import logger


class InvalidCredentialError(Exception):
    """The presented credential could not be verified."""


class TokenVerifier:
    """
    Verifies bearer tokens and extracts the principal email.

    Usage:
        verifier = TokenVerifier(secret_key="...", algorithm="HS256")
        email = verifier.verify(token)
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        email_claim: str = "email",
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.email_claim = email_claim

    def verify(self, token: str) -> str:
        """
        Verify ``token`` and return the principal email.

        Raises:
            InvalidCredentialError: Bad signature, expired, wrong audience
                or no email claim.
        """
        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except JWTError as e:
            logger.warning(f"Token rejected: {e}")
            raise InvalidCredentialError(str(e))

        email = payload.get(self.email_claim)
        if not email:
            raise InvalidCredentialError(f"Token has no '{self.email_claim}' claim")
        return email

    def issue(self, email: str, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a token for ``email``. Used by tests and local tooling."""
        claims = {
            self.email_claim: email,
            "sub": email,
            "exp": datetime.utcnow() + (expires_delta or timedelta(hours=1)),
        }
        if self.audience is not None:
            claims["aud"] = self.audience
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
