"""
Verification of Clerk session JWTs for the mirror's read API.

Tokens are RS256-signed by Clerk; the public keys come from the instance's
JWKS document ({issuer}/.well-known/jwks.json) through PyJWT's PyJWKClient.
The mirror never mints tokens of its own.

Built once in the application lifespan (only when CLERK_ISSUER_URL is set)
and read from app.state by clerk_mirror.auth.dependencies.
"""

import time
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type
from datetime import datetime, timezone
from threading import Lock

import jwt
from jwt import PyJWKClient, PyJWKClientError
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidTokenError,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Claims every Clerk session token carries
STANDARD_CLAIMS = ("sub", "iss", "exp", "iat")

# Checked in order; InvalidTokenError is the base class and must stay last
_DECODE_ERRORS: Sequence[Tuple[Type[Exception], str, str]] = (
    (ExpiredSignatureError, "token_expired", "Token has expired"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
)


class ClerkVerificationError(Exception):
    """A session token was rejected; error_code is the machine-readable reason."""

    def __init__(self, message: str, error_code: str = "verification_failed"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ClerkJWTVerifier:
    """
    Validate Clerk session tokens and return their claims.

    Relevant claims: sub (Clerk user ID, matched against users.external_id),
    sid (session ID), iss (frontend API URL), optional aud.

    Usage:
        verifier = ClerkJWTVerifier(issuer=settings.clerk_issuer_url)
        claims = verifier.verify_token(token)
    """

    KEY_CACHE_SECONDS = 3600
    LEEWAY_SECONDS = 60

    def __init__(
        self,
        issuer: Optional[str],
        audience: Optional[str] = None,
        jwks_url: Optional[str] = None,
        jwks_client: Optional[PyJWKClient] = None,
    ):
        """
        Args:
            issuer: Expected iss claim
            audience: Expected aud claim; audience is not checked when omitted
            jwks_url: Override for the JWKS location
            jwks_client: Ready-made key client (tests pass a stub)

        Raises:
            ClerkVerificationError: config_error when no issuer is given
        """
        if not issuer:
            raise ClerkVerificationError(
                "CLERK_ISSUER_URL must be set to verify Clerk session tokens",
                error_code="config_error",
            )

        self._issuer = issuer
        self._audience = audience
        self._jwks_url = jwks_url or issuer.rstrip("/") + "/.well-known/jwks.json"

        self._lock = Lock()
        self._jwks_client: Optional[PyJWKClient] = jwks_client
        self._jwks_built_at: float = time.time() if jwks_client is not None else 0.0

        logger.info(
            "Clerk JWT verifier ready",
            extra={"issuer": issuer, "jwks_url": self._jwks_url, "audience": audience},
        )

    @property
    def issuer(self) -> str:
        return self._issuer

    def _key_client(self) -> PyJWKClient:
        with self._lock:
            stale = time.time() - self._jwks_built_at > self.KEY_CACHE_SECONDS
            if self._jwks_client is None or stale:
                self._jwks_client = PyJWKClient(
                    self._jwks_url,
                    cache_keys=True,
                    lifespan=self.KEY_CACHE_SECONDS,
                )
                self._jwks_built_at = time.time()
                logger.debug("Built JWKS client", extra={"jwks_url": self._jwks_url})
            return self._jwks_client

    def _signing_key(self, token: str) -> Any:
        try:
            return self._key_client().get_signing_key_from_jwt(token).key
        except PyJWKClientError as e:
            logger.error("Could not resolve Clerk signing key", extra={"error": str(e)})
            raise ClerkVerificationError(f"Failed to fetch signing key: {e}", error_code="jwks_error")

    def _decode(self, token: str, key: Any, verify_exp: bool) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                issuer=self._issuer,
                audience=self._audience,
                leeway=self.LEEWAY_SECONDS,
                options={
                    "verify_exp": verify_exp,
                    "verify_aud": self._audience is not None,
                    "require": list(STANDARD_CLAIMS),
                },
            )
        except InvalidTokenError as e:
            for error_type, code, message in _DECODE_ERRORS:
                if isinstance(e, error_type):
                    break
            if code == "invalid_token":
                message = f"{message}: {e}"
            logger.warning("Rejected Clerk token", extra={"error_code": code})
            raise ClerkVerificationError(message, error_code=code)

    def verify_token(
        self,
        token: str,
        verify_exp: bool = True,
        required_claims: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Verify a session token and return its claims plus verified_at.

        A leading "Bearer " is stripped. Beyond the standard claims, any name
        in required_claims must also be present.

        Raises:
            ClerkVerificationError: missing_token, jwks_error, token_expired,
                invalid_issuer, invalid_audience, invalid_token or missing_claims
        """
        if token and token.startswith(BEARER_PREFIX):
            token = token[len(BEARER_PREFIX):]
        if not token:
            raise ClerkVerificationError("Token is required", error_code="missing_token")

        claims = self._decode(token, self._signing_key(token), verify_exp)

        missing = [name for name in (required_claims or []) if name not in claims]
        if missing:
            raise ClerkVerificationError(
                f"Missing required claims: {missing}",
                error_code="missing_claims",
            )

        claims["verified_at"] = datetime.now(timezone.utc).isoformat()
        logger.debug("Verified Clerk token", extra={"sub": claims.get("sub"), "sid": claims.get("sid")})
        return claims

    def refresh_jwks(self) -> None:
        """Drop the key client so the next verification refetches the JWKS."""
        with self._lock:
            self._jwks_client = None
            self._jwks_built_at = 0.0
        logger.info("JWKS client dropped", extra={"jwks_url": self._jwks_url})
