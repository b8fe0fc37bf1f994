"""Tests for handle_get: ordering of checks and byte-exact reply encoding."""

import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from tunnel.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from tunnel.schemas.tunnel import FetchRequest, FetchResult, FetchStatus
from tunnel.services.tunnel_service import (
    JSON_CONTENT_TYPE,
    JSONP_CONTENT_TYPE,
    MISSING_URL_MESSAGE,
    TEXT_CONTENT_TYPE,
    encode_envelope,
    handle_get,
)


def _stub_relay(result: FetchResult | None = None) -> Mock:
    relay = Mock()
    relay.fetch = AsyncMock(
        return_value=result
        or FetchResult(
            content="hello",
            status=FetchStatus(url="http://x", content_type="text/plain", http_code=200),
        )
    )
    return relay


class TestMissingUrl:
    @pytest.mark.asyncio
    async def test_returns_plain_text_without_fetch_or_rate_check(self):
        limiter = Mock()
        relay = _stub_relay()

        reply = await handle_get(
            FetchRequest(target_url="", client_id="a"), "cb", limiter=limiter, relay=relay
        )

        assert reply.body == b"URL parameter is required."
        assert reply.body.decode() == MISSING_URL_MESSAGE
        assert reply.content_type == TEXT_CONTENT_TYPE
        limiter.consume.assert_not_called()
        limiter.admit.assert_not_called()
        relay.fetch.assert_not_awaited()


class TestRateLimited:
    @pytest.mark.asyncio
    async def test_rejected_client_gets_plain_text_and_no_fetch(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=600)
        for _ in range(600):
            limiter.admit("a")
        relay = _stub_relay()

        reply = await handle_get(
            FetchRequest(target_url="http://x", client_id="a"), None, limiter=limiter, relay=relay
        )

        assert reply.body == b"rate limited: you have a max of 600 request per second"
        assert reply.content_type == TEXT_CONTENT_TYPE
        relay.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_message_uses_configured_limit(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=1)
        limiter.admit("a")

        reply = await handle_get(
            FetchRequest(target_url="http://x", client_id="a"), None, limiter=limiter, relay=_stub_relay()
        )

        assert reply.body == b"rate limited: you have a max of 1 request per second"

    @pytest.mark.asyncio
    async def test_limit_is_per_client(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=1)
        limiter.admit("a")
        relay = _stub_relay()

        reply = await handle_get(
            FetchRequest(target_url="http://x", client_id="b"), None, limiter=limiter, relay=relay
        )

        assert reply.content_type == JSON_CONTENT_TYPE
        relay.fetch.assert_awaited_once_with("http://x")


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_plain_json_reply(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=600)

        reply = await handle_get(
            FetchRequest(target_url="http://x", client_id="a"), "", limiter=limiter, relay=_stub_relay()
        )

        assert reply.content_type == JSON_CONTENT_TYPE
        assert reply.body == (
            b'{"contents":"hello","status":'
            b'{"url":"http://x","content_type":"text/plain","http_code":200}}'
        )

    @pytest.mark.asyncio
    async def test_jsonp_reply_wraps_payload(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=600)

        reply = await handle_get(
            FetchRequest(target_url="http://x", client_id="a"), "cb", limiter=limiter, relay=_stub_relay()
        )

        assert reply.content_type == JSONP_CONTENT_TYPE == "application/x-javascript"
        assert reply.body.startswith(b"cb(")
        assert reply.body.endswith(b")")
        assert json.loads(reply.body[3:-1])["contents"] == "hello"

    @pytest.mark.asyncio
    async def test_fetch_failure_is_reported_in_envelope(self):
        limiter = InMemoryFixedWindowRateLimiter(limit=600)
        relay = _stub_relay(FetchResult.failure("not a url"))

        reply = await handle_get(
            FetchRequest(target_url="not a url", client_id=""), None, limiter=limiter, relay=relay
        )

        assert json.loads(reply.body) == {
            "contents": "",
            "status": {"url": "not a url", "content_type": "", "http_code": 500},
        }

    @pytest.mark.asyncio
    async def test_end_to_end_with_mock_upstream(self, make_relay):
        relay = make_relay(
            lambda request: httpx.Response(
                200, content=b"hello", headers={"Content-Type": "text/plain"}
            )
        )
        limiter = InMemoryFixedWindowRateLimiter(limit=600)

        reply = await handle_get(
            FetchRequest(target_url="http://x.test/", client_id="a"), None, limiter=limiter, relay=relay
        )

        assert json.loads(reply.body) == {
            "contents": "hello",
            "status": {"url": "http://x.test/", "content_type": "text/plain", "http_code": 200},
        }

    def test_escapes_html_sensitive_characters(self):
        result = FetchResult(
            content="<script>a && b</script>\u2028\u2029\u00e9",
            status=FetchStatus(url="http://x/?a=1&b=2", content_type="text/html", http_code=200),
        )

        encoded = encode_envelope(result)

        assert "<" not in encoded and ">" not in encoded and "&" not in encoded
        assert "\\u003cscript\\u003ea \\u0026\\u0026 b" in encoded
        assert "\\u2028\\u2029" in encoded
        assert "\u00e9" in encoded
        assert json.loads(encoded)["contents"] == "<script>a && b</script>\u2028\u2029\u00e9"
        assert json.loads(encoded)["status"]["url"] == "http://x/?a=1&b=2"

    def test_escapes_quotes_and_control_characters(self):
        result = FetchResult(
            content='say "hi"\n\ttab\\',
            status=FetchStatus(url="http://x", content_type="", http_code=200),
        )

        encoded = encode_envelope(result)

        assert encoded.startswith('{"contents":"say \\"hi\\"\\n\\ttab\\\\"')
