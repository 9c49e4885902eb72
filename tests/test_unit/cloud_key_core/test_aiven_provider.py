"""Unit tests for the Aiven API token provider."""

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from cloud_key_core.exceptions import (
    ConfigurationError,
    NormalizationError,
    ProviderAPIError,
)
from cloud_key_core.model import STATUS_INACTIVE, Provider
from cloud_key_core.normalization import TIMESTAMP_FORMAT
from cloud_key_core.providers.aiven import (
    AIVEN_TOKEN_ENDPOINT,
    AivenKeyProvider,
    api_error_from_errors,
    key_from_token,
    token_description_from_full_account,
    token_prefix_from_full_account,
)


def _token(
    prefix: str,
    description: str | None,
    active: bool = True,
    expires_in: timedelta | None = None,
) -> dict:
    now = datetime.now(UTC)
    token = {
        "token_prefix": prefix,
        "description": description,
        "currently_active": active,
        "create_time": (now - timedelta(hours=1)).strftime(TIMESTAMP_FORMAT),
        "expiry_time": None,
    }
    if expires_in is not None:
        token["expiry_time"] = (now + expires_in).strftime(TIMESTAMP_FORMAT)
    return token


class RecordingHandler:
    """httpx mock handler that records requests and replies with a fixed body."""

    def __init__(self, body: object, status_code: int = 200) -> None:
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


def _provider(handler: RecordingHandler) -> AivenKeyProvider:
    return AivenKeyProvider(transport=httpx.MockTransport(handler))


class TestFullAccount:
    """Test the prefix and description packed into full_account."""

    def test_split(self) -> None:
        """Test prefix and description are recovered from full_account."""
        assert token_prefix_from_full_account("abc123-my-token") == "abc123"
        assert token_description_from_full_account("abc123-my-token") == "my-token"


class TestListKeys:
    """Test listing Aiven tokens."""

    @pytest.mark.asyncio
    async def test_tokens_without_description_skipped(self) -> None:
        """Test only described, active tokens are listed by default."""
        handler = RecordingHandler(
            {
                "tokens": [
                    _token("aaaa", "rotate-me"),
                    _token("bbbb", None),
                    _token("cccc", ""),
                    _token("dddd", "old", active=False),
                ]
            }
        )

        keys = await _provider(handler).keys("", False, "query-token")

        assert [key.id for key in keys] == ["aaaa"]
        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == AIVEN_TOKEN_ENDPOINT
        assert request.headers["Authorization"] == "Bearer query-token"

    @pytest.mark.asyncio
    async def test_include_inactive(self) -> None:
        """Test inactive tokens are returned on request."""
        handler = RecordingHandler(
            {"tokens": [_token("aaaa", "new"), _token("dddd", "old", active=False)]}
        )

        keys = await _provider(handler).keys("", True, "query-token")

        assert [key.status for key in keys][1] == STATUS_INACTIVE

    @pytest.mark.asyncio
    async def test_key_fields(self) -> None:
        """Test the normalized fields of an Aiven token."""
        handler = RecordingHandler(
            {"tokens": [_token("aaaa", "rotate-me", expires_in=timedelta(hours=2))]}
        )

        key = (await _provider(handler).keys("", False, "query-token"))[0]

        assert key.account == "rotate-me"
        assert key.name == "rotate-me"
        assert key.full_account == "aaaa-rotate-me"
        assert 59 <= key.age <= 61
        assert 119 <= key.life_remaining <= 121
        assert key.provider == Provider("aiven", "", "query-token")

    @pytest.mark.asyncio
    async def test_errors_collapsed(self) -> None:
        """Test an errors list in the body becomes one ProviderAPIError."""
        handler = RecordingHandler(
            {
                "errors": [
                    {"message": "Invalid token", "status": 403},
                    {"message": "Try again", "status": 403},
                ]
            },
            status_code=403,
        )

        with pytest.raises(ProviderAPIError) as exc_info:
            await _provider(handler).keys("", False, "bad-token")

        assert exc_info.value.message == (
            "msg: Invalid token, status: 403,msg: Try again, status: 403"
        )
        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_http_error_without_errors_list(self) -> None:
        """Test an error status without an errors list still fails."""
        handler = RecordingHandler({"message": "Service unavailable"}, 503)

        with pytest.raises(ProviderAPIError) as exc_info:
            await _provider(handler).keys("", False, "query-token")

        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_undecodable_body(self) -> None:
        """Test a non-JSON body is a ProviderAPIError."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>oops</html>")
        )
        provider = AivenKeyProvider(transport=transport)

        with pytest.raises(ProviderAPIError) as exc_info:
            await provider.keys("", False, "query-token")

        assert "Failed decoding response" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        """Test a connection failure is a ProviderAPIError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = AivenKeyProvider(transport=httpx.MockTransport(refuse))

        with pytest.raises(ProviderAPIError):
            await provider.keys("", False, "query-token")

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        """Test an empty query credential is a configuration error."""
        handler = RecordingHandler({"tokens": []})

        with pytest.raises(ConfigurationError):
            await _provider(handler).keys("", False, "")

        assert handler.requests == []


class TestKeyFromToken:
    """Test token normalization."""

    def test_missing_prefix(self) -> None:
        """Test a token without a prefix cannot be normalized."""
        token = _token("", "rotate-me")

        with pytest.raises(NormalizationError):
            key_from_token(token, Provider("aiven"))

    def test_fractional_seconds(self) -> None:
        """Test create times with fractional seconds are accepted."""
        token = _token("aaaa", "rotate-me")
        token["create_time"] = "2020-01-01T00:00:00.250000Z"

        key = key_from_token(token, Provider("aiven"))

        assert key.age > 0


class TestCreateKey:
    """Test creating Aiven tokens."""

    @pytest.mark.asyncio
    async def test_create_key(self) -> None:
        """Test the description is posted and prefix and token returned."""
        handler = RecordingHandler(
            {"token_prefix": "eeee", "full_token": "eeee-full-secret"}
        )

        result = await _provider(handler).create_key(
            "", "aaaa-rotate-me", "query-token"
        )

        assert result == ("eeee", "eeee-full-secret")
        request = handler.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"description": "rotate-me"}

    @pytest.mark.asyncio
    async def test_incomplete_response(self) -> None:
        """Test a response without the full token is a ProviderAPIError."""
        handler = RecordingHandler({"token_prefix": "eeee"})

        with pytest.raises(ProviderAPIError):
            await _provider(handler).create_key("", "aaaa-rotate-me", "query-token")


class TestDeleteKey:
    """Test revoking Aiven tokens."""

    @pytest.mark.asyncio
    async def test_delete_key(self) -> None:
        """Test the token prefix is revoked through its own URL."""
        handler = RecordingHandler({"message": "Revoked"})

        await _provider(handler).delete_key("", "aaaa-rotate-me", "aaaa", "query-token")

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == f"{AIVEN_TOKEN_ENDPOINT}/aaaa"


def test_api_error_from_errors_without_status() -> None:
    """Test errors without an integer status leave the status unset."""
    error = api_error_from_errors([{"message": "boom"}])

    assert error.message == "msg: boom, status: "
    assert error.status is None
