"""
Claims model for Azure AD tokens.

Holds the typed payload of a decoded token and the helpers used to classify
and display it. Decoding here never checks a signature.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from jose import jwt
from jose.exceptions import JWTError

from .errors import MalformedTokenError

logger = logging.getLogger(__name__)

# Microsoft Graph application id; the only audience that marks an access token
GRAPH_API_ID = "00000003-0000-0000-c000-000000000000"

_TIMESTAMP_CLAIMS = ("exp", "iat", "nbf")
_OPTIONAL_CLAIMS = ("name", "email", "preferred_username", "appid", "scp")
KNOWN_CLAIMS = frozenset(("iss", "sub", "aud") + _TIMESTAMP_CLAIMS + _OPTIONAL_CLAIMS)


class TokenType(Enum):
    ACCESS = "access_token"
    ID = "id_token"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SingleAudience:
    """'aud' given as one string"""
    value: str


@dataclass(frozen=True)
class MultipleAudience:
    """'aud' given as a list of strings"""
    values: Tuple[str, ...]


Audience = Union[SingleAudience, MultipleAudience]


def parse_audience(raw: Any) -> Audience:
    """Map a raw 'aud' value onto the audience union"""
    if isinstance(raw, str):
        return SingleAudience(raw)
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return MultipleAudience(tuple(raw))
    raise MalformedTokenError(f"Unsupported 'aud' claim shape: {type(raw).__name__}")


def format_timestamp(timestamp: int) -> str:
    """Convert seconds since epoch to 'YYYY-MM-DD HH:MM:SS UTC'"""
    try:
        dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"{timestamp} (invalid timestamp)"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


@dataclass
class Claims:
    """
    Claims of an Azure AD token.

    Named fields cover the registered and common identity claims; anything
    else in the payload ends up in ``extra``, which never repeats a named field.
    """
    iss: str
    sub: str
    aud: Audience
    exp: int
    iat: int
    nbf: int
    name: Optional[str] = None
    email: Optional[str] = None
    preferred_username: Optional[str] = None
    appid: Optional[str] = None
    scp: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Claims":
        """Build claims from a decoded payload, raising MalformedTokenError on bad shapes"""
        for name in ("iss", "sub"):
            if not isinstance(payload.get(name), str):
                raise MalformedTokenError(f"Token missing or invalid '{name}' claim")

        if "aud" not in payload:
            raise MalformedTokenError("Token missing 'aud' claim")

        times = {}
        for name in _TIMESTAMP_CLAIMS:
            value = payload.get(name)
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise MalformedTokenError(f"Token missing or invalid '{name}' claim")
            times[name] = value

        optional = {}
        for name in _OPTIONAL_CLAIMS:
            value = payload.get(name)
            if value is not None and not isinstance(value, str):
                raise MalformedTokenError(f"Claim '{name}' must be a string")
            optional[name] = value

        extra = {key: value for key, value in payload.items() if key not in KNOWN_CLAIMS}

        return cls(
            iss=payload["iss"],
            sub=payload["sub"],
            aud=parse_audience(payload["aud"]),
            extra=extra,
            **times,
            **optional,
        )

    def token_type(self) -> TokenType:
        """
        Access token iff the audience is exactly the single Graph API id.

        A list audience is always an ID token, even when it contains the Graph id.
        """
        if isinstance(self.aud, SingleAudience) and self.aud.value == GRAPH_API_ID:
            return TokenType.ACCESS
        return TokenType.ID

    def audience_display(self) -> str:
        if isinstance(self.aud, SingleAudience):
            return self.aud.value
        if isinstance(self.aud, MultipleAudience):
            return json.dumps(list(self.aud.values), separators=(",", ":"), ensure_ascii=False)
        return "Unknown format"

    def audience_values(self) -> List[str]:
        if isinstance(self.aud, SingleAudience):
            return [self.aud.value]
        if isinstance(self.aud, MultipleAudience):
            return list(self.aud.values)
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to a JWT-style payload mapping"""
        data: Dict[str, Any] = {
            "iss": self.iss,
            "sub": self.sub,
            "aud": self.aud.value if isinstance(self.aud, SingleAudience) else list(self.aud.values),
            "exp": self.exp,
            "iat": self.iat,
            "nbf": self.nbf,
        }
        for name in _OPTIONAL_CLAIMS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data.update(self.extra)
        return data


def decode_token(token: str) -> Tuple[Dict[str, Any], Claims]:
    """
    Decode a compact JWT without verifying it.

    Returns the header mapping and the typed claims.
    Raises MalformedTokenError if the token cannot be parsed.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise MalformedTokenError("Invalid token format: expected three dot-separated segments")

    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise MalformedTokenError(f"Failed to decode token: {e}") from e

    if not isinstance(header.get("alg"), str):
        raise MalformedTokenError("Token header missing 'alg'")

    claims = Claims.from_payload(payload)
    logger.debug("Decoded token from issuer %s", claims.iss)
    return header, claims
