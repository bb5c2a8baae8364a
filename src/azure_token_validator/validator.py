"""
Azure AD Token Validator - Core Implementation

Decodes a token, resolves the signing key set for its issuer and verifies
the RS256 signature and the configured claims.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import httpx
from jose import jwt
from jose.constants import ALGORITHMS
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from .claims import Claims, decode_token
from .errors import (
    AudienceMismatchError,
    ClockUnavailableError,
    ConfigurationError,
    ExpiredTokenError,
    HttpStatusError,
    IssuerMismatchError,
    JWKSFetchError,
    KeyNotFoundError,
    MalformedResponseError,
    MissingKeyIdError,
    NotYetValidError,
    SignatureInvalidError,
    TokenValidatorError,
)
from .jwk import Jwk, JwksResponse

logger = logging.getLogger(__name__)

LOGIN_HOST = "https://login.microsoftonline.com"

# The verification algorithm is fixed here and never read from the token header
ALLOWED_ALGORITHMS = [ALGORITHMS.RS256]


class TokenFormat(Enum):
    """Azure AD token endpoint versions"""
    V1 = "v1.0"
    V2 = "v2.0"
    COMMON = "common"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ValidatorConfig:
    """
    Token validator configuration.

    When ``validate_iss`` is on and ``expected_issuer`` is not set, the issuer
    is compared with the token's own 'iss' claim, so the check always passes.
    Set ``expected_issuer`` to make it meaningful.

    ``jwks_cache_ttl=None`` keeps fetched key sets for the validator's lifetime.
    """
    tenant_id: str = "common"
    validate_exp: bool = True
    validate_aud: bool = False
    validate_iss: bool = True
    leeway: int = 300
    audience: Optional[str] = None
    expected_issuer: Optional[str] = None
    validate_nbf: bool = False
    jwks_cache_ttl: Optional[float] = None
    refresh_on_key_miss: bool = False
    http_timeout: float = 10.0

    def __post_init__(self):
        if not isinstance(self.tenant_id, str) or not self.tenant_id.strip():
            raise ConfigurationError("tenant_id must be a non-empty string")
        if self.leeway < 0:
            raise ConfigurationError("leeway must not be negative")
        if self.jwks_cache_ttl is not None and self.jwks_cache_ttl <= 0:
            raise ConfigurationError("jwks_cache_ttl must be positive")
        if self.http_timeout <= 0:
            raise ConfigurationError("http_timeout must be positive")


def _utc_now() -> int:
    now = datetime.now(timezone.utc).timestamp()
    if now < 0:
        raise ClockUnavailableError("System clock is before the Unix epoch")
    return int(now)


class TokenValidator:
    """
    Azure AD token validator.

    ORDER:
    1. Decode token (unverified) -> header and claims
    2. Check expiration against the wall clock (no leeway)
    3. Read 'kid' from the header
    4. Pick the discovery endpoint from the issuer, resolve keys (cache or fetch)
    5. Find the key by 'kid' and build the RSA key
    6. Verify signature and enabled claims with RS256 only

    One instance owns one key-set cache. Cache resolution is serialized with
    an asyncio lock, so the instance may be shared by tasks on one event loop
    but not across threads.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or ValidatorConfig()
        self._client = client
        self._owns_client = client is None
        # Cache: {jwks_uri: (jwks, fetched_at)}
        self._cache: Dict[str, Tuple[JwksResponse, float]] = {}
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "TokenValidator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this validator created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.http_timeout)
        return self._client

    def get_jwks_uri(self, token_format: TokenFormat) -> str:
        """Discovery keys URL for the given format and configured tenant"""
        if token_format is TokenFormat.V1:
            return f"{LOGIN_HOST}/{self.config.tenant_id}/discovery/keys"
        if token_format is TokenFormat.V2:
            return f"{LOGIN_HOST}/{self.config.tenant_id}/discovery/v2.0/keys"
        return f"{LOGIN_HOST}/common/discovery/keys"

    def determine_token_format(self, claims: Claims) -> TokenFormat:
        """
        Guess the endpoint version from substrings of the (untrusted) issuer.

        An issuer that merely contains one of the markers is classified by it.
        """
        if "sts.windows.net" in claims.iss:
            token_format = TokenFormat.V1
        elif "/v2.0" in claims.iss:
            token_format = TokenFormat.V2
        else:
            token_format = TokenFormat.COMMON
        logger.debug("Issuer %s classified as %s", claims.iss, token_format)
        return token_format

    def decode_token(self, token: str) -> Tuple[Dict[str, Any], Claims]:
        """Decode a token without validation to inspect its claims"""
        return decode_token(token)

    async def fetch_jwks(self, uri: str) -> JwksResponse:
        """Fetch the key set from ``uri`` and overwrite its cache entry"""
        logger.debug("Fetching JWKS from %s", uri)
        try:
            response = await self._http().get(uri, timeout=self.config.http_timeout)
        except httpx.HTTPError as e:
            raise JWKSFetchError(f"Failed to fetch JWKS from '{uri}': {e}", jwks_uri=uri) from e

        if not response.is_success:
            raise HttpStatusError(
                f"Failed to fetch JWKS: {response.status_code}",
                jwks_uri=uri,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"JWKS response from '{uri}' is not JSON: {e}", jwks_uri=uri) from e

        try:
            jwks = JwksResponse.from_dict(data)
        except MalformedResponseError as e:
            e.jwks_uri = uri
            raise

        self._cache[uri] = (jwks, time.monotonic())
        logger.info("Fetched JWKS from %s (%d keys)", uri, len(jwks.keys))
        return jwks

    def _cached(self, uri: str) -> Optional[JwksResponse]:
        entry = self._cache.get(uri)
        if entry is None:
            return None
        jwks, fetched_at = entry
        ttl = self.config.jwks_cache_ttl
        if ttl is not None and time.monotonic() - fetched_at >= ttl:
            logger.debug("Cached JWKS for %s is stale", uri)
            return None
        return jwks

    async def get_jwks(self, uri: str) -> JwksResponse:
        """Key set for ``uri`` from the cache, fetching it on a miss"""
        async with self._lock:
            jwks = self._cached(uri)
            if jwks is not None:
                logger.debug("JWKS cache hit for %s", uri)
                return jwks
            return await self.fetch_jwks(uri)

    async def _find_signing_key(self, uri: str, kid: str) -> Jwk:
        jwks = await self.get_jwks(uri)
        key = jwks.find_key(kid)
        if key is None and self.config.refresh_on_key_miss:
            # Keys may have rotated since the set was cached
            logger.debug("kid %s not in cached JWKS, refreshing %s", kid, uri)
            async with self._lock:
                jwks = await self.fetch_jwks(uri)
            key = jwks.find_key(kid)
        if key is None:
            raise KeyNotFoundError("Signing key not found in JWKS", kid=kid, jwks_uri=uri)
        return key

    def _decode_options(self) -> Dict[str, Any]:
        return {
            "verify_signature": True,
            "verify_exp": self.config.validate_exp,
            "verify_aud": self.config.validate_aud,
            "verify_iss": self.config.validate_iss,
            "verify_nbf": self.config.validate_nbf,
            "verify_iat": False,
            "verify_sub": False,
            "verify_jti": False,
            "verify_at_hash": False,
            "leeway": self.config.leeway,
        }

    async def validate_token(self, token: str) -> Claims:
        """
        Validate a token against Azure AD public keys.

        Returns the verified claims, raises a TokenValidatorError subclass otherwise.
        """
        try:
            return await self._validate(token)
        except TokenValidatorError as e:
            logger.warning("Token rejected: %s", e)
            raise

    async def _validate(self, token: str) -> Claims:
        header, claims = decode_token(token)

        if self.config.validate_exp:
            now = _utc_now()
            if claims.exp < now:
                raise ExpiredTokenError("Token has expired", exp=claims.exp)

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise MissingKeyIdError("Missing 'kid' in token header")

        token_format = self.determine_token_format(claims)
        jwks_uri = self.get_jwks_uri(token_format)
        key = await self._find_signing_key(jwks_uri, kid)
        verification_key = key.to_verification_key()

        if self.config.validate_iss:
            issuer = self.config.expected_issuer or claims.iss
        else:
            issuer = None

        try:
            payload = jwt.decode(
                token,
                verification_key,
                algorithms=ALLOWED_ALGORITHMS,
                options=self._decode_options(),
                audience=self.config.audience,
                issuer=issuer,
            )
        except ExpiredSignatureError as e:
            raise ExpiredTokenError(f"Token has expired: {e}", exp=claims.exp) from e
        except JWTClaimsError as e:
            message = str(e).lower()
            if "issuer" in message:
                raise IssuerMismatchError(f"Invalid issuer: {claims.iss}", issuer=claims.iss) from e
            if "audience" in message:
                raise AudienceMismatchError(f"Invalid audience: {claims.audience_display()}") from e
            if "nbf" in message:
                raise NotYetValidError(f"Token is not yet valid: {e}") from e
            raise SignatureInvalidError(f"Token validation failed: {e}") from e
        except JWTError as e:
            raise SignatureInvalidError(f"Token validation failed: {e}") from e

        return Claims.from_payload(payload)

    def clear_cache(self) -> None:
        self._cache.clear()
