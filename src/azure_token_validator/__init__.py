"""
Azure AD Token Validator

Decodes, classifies and verifies Azure AD access and ID tokens against the
tenant's published signing keys.
"""

from .claims import (
    GRAPH_API_ID,
    Audience,
    Claims,
    MultipleAudience,
    SingleAudience,
    TokenType,
    decode_token,
    format_timestamp,
)
from .errors import (
    AudienceMismatchError,
    ClockUnavailableError,
    ConfigurationError,
    ExpiredTokenError,
    GraphAPIError,
    HttpStatusError,
    IssuerMismatchError,
    JWKSFetchError,
    KeyFormatError,
    KeyNotFoundError,
    MalformedResponseError,
    MalformedTokenError,
    MissingKeyIdError,
    NotYetValidError,
    SignatureInvalidError,
    TokenValidationError,
    TokenValidatorError,
)
from .graph import GraphClient
from .jwk import Jwk, JwksResponse
from .validator import TokenFormat, TokenValidator, ValidatorConfig

__version__ = "0.1.0"

__all__ = [
    "GRAPH_API_ID",
    "Audience",
    "Claims",
    "MultipleAudience",
    "SingleAudience",
    "TokenType",
    "decode_token",
    "format_timestamp",
    "Jwk",
    "JwksResponse",
    "TokenFormat",
    "TokenValidator",
    "ValidatorConfig",
    "GraphClient",
    "TokenValidatorError",
    "ConfigurationError",
    "TokenValidationError",
    "MalformedTokenError",
    "ExpiredTokenError",
    "NotYetValidError",
    "MissingKeyIdError",
    "KeyNotFoundError",
    "KeyFormatError",
    "SignatureInvalidError",
    "IssuerMismatchError",
    "AudienceMismatchError",
    "ClockUnavailableError",
    "JWKSFetchError",
    "HttpStatusError",
    "MalformedResponseError",
    "GraphAPIError",
]
