"""
Signing key material published by Azure AD discovery endpoints
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from jose import jwk
from jose.backends.base import Key
from jose.constants import ALGORITHMS
from jose.exceptions import JWKError

from .errors import KeyFormatError, MalformedResponseError


@dataclass(frozen=True)
class Jwk:
    """One RSA public key from a JWKS response"""
    kid: str
    kty: str
    n: str
    e: str
    use: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Jwk":
        if not isinstance(data, dict):
            raise MalformedResponseError("JWKS entry is not an object")
        for name in ("kid", "kty", "n", "e"):
            if not isinstance(data.get(name), str):
                raise MalformedResponseError(f"JWKS entry missing '{name}'")
        use = data.get("use")
        if use is not None and not isinstance(use, str):
            raise MalformedResponseError("JWKS entry has a non-string 'use'")
        return cls(kid=data["kid"], kty=data["kty"], n=data["n"], e=data["e"], use=use)

    def to_dict(self) -> Dict[str, str]:
        data = {"kid": self.kid, "kty": self.kty, "n": self.n, "e": self.e}
        if self.use is not None:
            data["use"] = self.use
        return data

    def to_verification_key(self) -> Key:
        """
        Build an RS256 public key from the base64url modulus and exponent.

        The 'use' member is deliberately not consulted.
        """
        try:
            return jwk.construct(
                {"kty": self.kty, "n": self.n, "e": self.e},
                algorithm=ALGORITHMS.RS256,
            )
        except (JWKError, ValueError, TypeError) as e:
            raise KeyFormatError(f"Invalid RSA key '{self.kid}': {e}", kid=self.kid) from e


@dataclass(frozen=True)
class JwksResponse:
    """A key set as returned by a discovery endpoint"""
    keys: List[Jwk]

    @classmethod
    def from_dict(cls, data: Any) -> "JwksResponse":
        if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
            raise MalformedResponseError("JWKS response missing 'keys' array")
        return cls(keys=[Jwk.from_dict(entry) for entry in data["keys"]])

    def find_key(self, kid: str) -> Optional[Jwk]:
        """First key whose 'kid' matches exactly, or None"""
        return next((key for key in self.keys if key.kid == kid), None)
