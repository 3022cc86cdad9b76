"""Tests for HTTP client utility module."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from shared.exceptions import ProviderError
from shared.http_client import AsyncHTTPClient


def _mock_response(status: int = 200, json_data: Any = None, body: bytes = b"", text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.reason = "Error" if status >= 400 else "OK"
    response.json = AsyncMock(return_value=json_data)
    response.read = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


def _mock_session(response: MagicMock) -> MagicMock:
    session = MagicMock()
    session.close = AsyncMock()
    session.request.return_value.__aenter__.return_value = response
    session.head.return_value.__aenter__.return_value = response
    return session


class TestAsyncHTTPClient:
    """Test HTTP client functionality."""

    @pytest.mark.asyncio
    async def test_context_manager(self) -> None:
        """Test HTTP client as async context manager."""
        async with AsyncHTTPClient() as client:
            assert client.session is not None

    @pytest.mark.asyncio
    async def test_requires_context_manager(self) -> None:
        client = AsyncHTTPClient()
        with pytest.raises(RuntimeError):
            await client.post_json("https://api.example.com")

    @pytest.mark.asyncio
    async def test_post_json(self) -> None:
        """Test POST request decoding a JSON body."""
        payload = {"prompt": "quiz"}
        response = _mock_response(json_data={"images": [{"url": "https://cdn.example.com/a.png"}]})

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(response)
            mock_session_class.return_value = mock_session

            async with AsyncHTTPClient(provider="Ideogram v3") as client:
                result = await client.post_json("https://fal.run/model", data=payload, headers={"A": "b"})

        assert result["images"][0]["url"].endswith("a.png")
        mock_session.request.assert_called_once_with(
            "POST", "https://fal.run/model", json=payload, headers={"A": "b"}
        )
        mock_session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_post_for_bytes(self) -> None:
        response = _mock_response(body=b"ID3audio")

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(response)
            async with AsyncHTTPClient() as client:
                assert await client.post_for_bytes("https://api.example.com/tts") == b"ID3audio"

    @pytest.mark.asyncio
    async def test_get_bytes_with_timeout(self) -> None:
        response = _mock_response(body=b"\x89PNG")

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(response)
            mock_session_class.return_value = mock_session
            async with AsyncHTTPClient() as client:
                assert await client.get_bytes("https://cdn.example.com/a.png", timeout=15) == b"\x89PNG"

        _, kwargs = mock_session.request.call_args
        assert kwargs["timeout"].total == 15

    @pytest.mark.asyncio
    async def test_error_status_raises_provider_error(self) -> None:
        response = _mock_response(status=401, json_data={"detail": "Invalid API key"}, text="unauthorized")

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(response)
            async with AsyncHTTPClient(provider="ElevenLabs") as client:
                with pytest.raises(ProviderError) as exc_info:
                    await client.post_json("https://api.example.com")

        assert exc_info.value.status == 401
        assert exc_info.value.provider == "ElevenLabs"
        assert str(exc_info.value) == "ElevenLabs API error (401): Invalid API key"

    @pytest.mark.asyncio
    async def test_error_detail_list(self) -> None:
        response = _mock_response(
            status=422,
            json_data={"detail": [{"msg": "prompt too long"}, {"msg": "bad size"}]},
        )

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(response)
            async with AsyncHTTPClient(provider="fal") as client:
                with pytest.raises(ProviderError) as exc_info:
                    await client.post_json("https://api.example.com")

        assert exc_info.value.message == "prompt too long, bad size"

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_error(self) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session.request.side_effect = asyncio.TimeoutError()
            mock_session_class.return_value = mock_session

            async with AsyncHTTPClient(provider="fal") as client:
                with pytest.raises(ProviderError, match="timed out"):
                    await client.get_bytes("https://cdn.example.com/slow.png")

    @pytest.mark.asyncio
    async def test_client_error_raises_provider_error(self) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session.request.side_effect = aiohttp.ClientConnectionError("connection refused")
            mock_session_class.return_value = mock_session

            async with AsyncHTTPClient(provider="fal") as client:
                with pytest.raises(ProviderError, match="connection refused"):
                    await client.post_json("https://api.example.com")

    @pytest.mark.asyncio
    async def test_is_reachable(self) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(_mock_response(status=200))
            async with AsyncHTTPClient() as client:
                assert await client.is_reachable("https://cdn.example.com/a.png") is True

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.return_value = _mock_session(_mock_response(status=404))
            async with AsyncHTTPClient() as client:
                assert await client.is_reachable("https://cdn.example.com/missing.png") is False

        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session = _mock_session(_mock_response())
            mock_session.head.side_effect = aiohttp.ClientConnectionError()
            mock_session_class.return_value = mock_session
            async with AsyncHTTPClient() as client:
                assert await client.is_reachable("https://unreachable.invalid") is False
