"""
Shared fixtures: an RSA signing key, its JWK and a stubbed discovery endpoint.
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from jose.utils import base64url_encode, long_to_base64

GRAPH_API_ID = "00000003-0000-0000-c000-000000000000"
V2_COMMON_ISSUER = "https://login.microsoftonline.com/common/v2.0"
COMMON_KEYS_URI = "https://login.microsoftonline.com/common/discovery/keys"
V2_COMMON_KEYS_URI = "https://login.microsoftonline.com/common/discovery/v2.0/keys"


def _private_pem(private_key) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _public_jwk(private_key, kid: str) -> Dict[str, str]:
    numbers = private_key.public_key().public_numbers()
    return {
        "kid": kid,
        "kty": "RSA",
        "use": "sig",
        "n": long_to_base64(numbers.n).decode("ascii"),
        "e": long_to_base64(numbers.e).decode("ascii"),
    }


def b64url_json(data: Any) -> str:
    return base64url_encode(json.dumps(data).encode("utf-8")).decode("ascii")


@pytest.fixture(scope="session")
def signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_signing_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def signing_pem(signing_key) -> bytes:
    return _private_pem(signing_key)


@pytest.fixture(scope="session")
def signing_jwk(signing_key) -> Dict[str, str]:
    return _public_jwk(signing_key, "K1")


@pytest.fixture(scope="session")
def other_jwk(other_signing_key) -> Dict[str, str]:
    return _public_jwk(other_signing_key, "K2")


@pytest.fixture
def base_payload() -> Dict[str, Any]:
    return {
        "iss": V2_COMMON_ISSUER,
        "aud": GRAPH_API_ID,
        "exp": 9999999999,
        "iat": 1,
        "nbf": 1,
        "sub": "s",
    }


@pytest.fixture
def make_token(signing_pem) -> Callable[..., str]:
    """Sign a payload with the session key; header kid defaults to K1"""
    def _make(payload: Dict[str, Any], kid: Any = "K1", pem: bytes = None) -> str:
        headers = {} if kid is None else {"kid": kid}
        return jwt.encode(payload, pem or signing_pem, algorithm="RS256", headers=headers)
    return _make


class StubDiscovery:
    """Serves key sets per URL through httpx.MockTransport and counts requests"""

    def __init__(self):
        self.routes: Dict[str, Callable[[], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def set_keys(self, url: str, keys: List[Dict[str, Any]]) -> None:
        self.routes[url] = lambda: httpx.Response(200, json={"keys": keys})

    def set_response(self, url: str, status_code: int, **kwargs: Any) -> None:
        self.routes[url] = lambda: httpx.Response(status_code, **kwargs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        factory = self.routes.get(str(request.url))
        if factory is None:
            return httpx.Response(404, json={"error": "not found"})
        return factory()

    def calls(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def discovery(signing_jwk) -> StubDiscovery:
    stub = StubDiscovery()
    stub.set_keys(V2_COMMON_KEYS_URI, [signing_jwk])
    stub.set_keys(COMMON_KEYS_URI, [signing_jwk])
    return stub
