"""Tests for JWKS retrieval and key selection."""

import httpx
import pytest

from cclti.core.errors import JwksFetchFailure, KeyNotFound
from cclti.crypto.types import JsonWebKey
from cclti.lti.jwks import JwksFetcher, select_jwk
from tests.support import JWKS_URI, PlatformKey, generate_platform_key, platform_jwk


def _fetcher(handler) -> JwksFetcher:
    return JwksFetcher(transport=httpx.MockTransport(handler))


class TestJwksFetcher:
    """Tests for fetching a platform's key set."""

    async def test_fetches_keys(
        self,
        fetcher: JwksFetcher,
        platform_key: PlatformKey,
        jwks_calls: list[httpx.Request],
    ) -> None:
        keys = await fetcher.fetch(JWKS_URI)
        assert [k.kid for k in keys] == [platform_key.kid]
        assert len(jwks_calls) == 1
        assert jwks_calls[0].headers["accept"] == "application/json"

    async def test_keeps_unknown_members(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"keys": [{"kty": "EC", "kid": "ec-1", "crv": "P-256"}]},
            )

        keys = await _fetcher(handler).fetch(JWKS_URI)
        assert keys[0].kty == "EC"
        assert not keys[0].is_rsa_signing_key

    async def test_rejects_plain_http(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"keys": []})

        with pytest.raises(JwksFetchFailure):
            await _fetcher(handler).fetch("http://lms.example.edu/jwks")
        assert calls == []

    async def test_server_error(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(500))
        with pytest.raises(JwksFetchFailure) as exc_info:
            await fetcher.fetch(JWKS_URI)
        assert exc_info.value.status_code == 502

    async def test_redirect_not_followed(self) -> None:
        fetcher = _fetcher(
            lambda request: httpx.Response(
                302, headers={"Location": "https://elsewhere.example.com/jwks"}
            )
        )
        with pytest.raises(JwksFetchFailure):
            await fetcher.fetch(JWKS_URI)

    async def test_invalid_json(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(JwksFetchFailure):
            await fetcher.fetch(JWKS_URI)

    async def test_missing_keys_member(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(200, json={"foo": []}))
        with pytest.raises(JwksFetchFailure):
            await fetcher.fetch(JWKS_URI)

    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(JwksFetchFailure):
            await _fetcher(handler).fetch(JWKS_URI)

    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(JwksFetchFailure):
            await _fetcher(handler).fetch(JWKS_URI)


class TestSelectJwk:
    """Tests for choosing the signing key by kid."""

    @pytest.fixture
    def keys(self) -> list[JsonWebKey]:
        first = generate_platform_key()
        second = generate_platform_key()
        return [
            JsonWebKey(kty="RSA", kid="enc-1", use="enc", n="AQAB", e="AQAB"),
            platform_jwk(first.public_key_pem, "k1"),
            platform_jwk(second.public_key_pem, "k2"),
        ]

    def test_by_kid(self, keys: list[JsonWebKey]) -> None:
        assert select_jwk(keys, "k2").kid == "k2"

    def test_unknown_kid_does_not_fall_back(self, keys: list[JsonWebKey]) -> None:
        with pytest.raises(KeyNotFound):
            select_jwk(keys, "rotated-away")

    def test_kid_of_encryption_key(self, keys: list[JsonWebKey]) -> None:
        with pytest.raises(KeyNotFound):
            select_jwk(keys, "enc-1")

    def test_no_kid_uses_first_rsa_signing_key(self, keys: list[JsonWebKey]) -> None:
        assert select_jwk(keys, None).kid == "k1"

    def test_empty_set(self) -> None:
        with pytest.raises(KeyNotFound):
            select_jwk([], None)

    def test_no_rsa_keys(self) -> None:
        with pytest.raises(KeyNotFound):
            select_jwk([JsonWebKey(kty="EC", kid="ec-1")], None)
