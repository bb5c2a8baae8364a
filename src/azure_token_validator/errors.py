"""
Azure token validator error classes
"""

from typing import Optional


class TokenValidatorError(Exception):
    """Base exception for all token validator errors"""
    pass


class ConfigurationError(TokenValidatorError):
    """
    Raised when the validator configuration is invalid
    """
    pass


class TokenValidationError(TokenValidatorError):
    """
    Raised when a token is rejected (format, signature, claims, keys)
    """
    pass


class MalformedTokenError(TokenValidationError):
    """
    Raised when a token cannot be split, base64url-decoded or parsed as JSON,
    or when its payload does not have the expected claim shapes
    """
    pass


class ExpiredTokenError(TokenValidationError):
    """Raised when the token's 'exp' claim is in the past"""

    def __init__(self, message: str, exp: Optional[int] = None):
        super().__init__(message)
        self.exp = exp


class NotYetValidError(TokenValidationError):
    """Raised when the token's 'nbf' claim is in the future"""
    pass


class MissingKeyIdError(TokenValidationError):
    """Raised when the token header carries no 'kid'"""
    pass


class KeyNotFoundError(TokenValidationError):
    """
    Raised when no key in the resolved key set matches the token's 'kid'
    """
    def __init__(self, message: str, kid: str = None, jwks_uri: str = None):
        super().__init__(message)
        self.kid = kid
        self.jwks_uri = jwks_uri


class KeyFormatError(TokenValidationError):
    """
    Raised when a JWK cannot be turned into an RSA verification key
    """
    def __init__(self, message: str, kid: str = None):
        super().__init__(message)
        self.kid = kid


class SignatureInvalidError(TokenValidationError):
    """Raised when signature verification fails"""
    pass


class IssuerMismatchError(TokenValidationError):
    """Raised when the 'iss' claim does not match the expected issuer"""

    def __init__(self, message: str, issuer: str = None):
        super().__init__(message)
        self.issuer = issuer


class AudienceMismatchError(TokenValidationError):
    """Raised when audience validation is enabled and the 'aud' claim does not match"""
    pass


class ClockUnavailableError(TokenValidationError):
    """Raised when the system clock cannot provide a usable UTC timestamp"""
    pass


class JWKSFetchError(TokenValidatorError):
    """
    Raised when the signing key set cannot be fetched from the discovery endpoint
    """
    def __init__(self, message: str, jwks_uri: str = None):
        super().__init__(message)
        self.jwks_uri = jwks_uri


class HttpStatusError(JWKSFetchError):
    """Raised when the discovery endpoint answers with a non-success status"""

    def __init__(self, message: str, jwks_uri: str = None, status_code: int = None):
        super().__init__(message, jwks_uri=jwks_uri)
        self.status_code = status_code


class MalformedResponseError(JWKSFetchError):
    """Raised when the discovery endpoint body is not a valid key set"""
    pass


class GraphAPIError(TokenValidatorError):
    """
    Raised when a Microsoft Graph call made with the token fails
    """
    def __init__(self, message: str, url: str = None, status_code: int = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
