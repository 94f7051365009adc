"""
Unit tests for the upstream values fetcher.
"""

import asyncio

import httpx
import pytest

from service_schema.app.adapters import ValuesFetcher
from shared.errors import FetchFailedError


VALUES_YAML = b"replicaCount: 1\nimage:\n  repository: nginx\n"


class BrokenStream(httpx.AsyncByteStream):
    """Response body that fails part way through."""

    async def __aiter__(self):
        yield b"replicaCount: "
        raise httpx.ReadError("connection reset by peer")


def make_fetcher(handler, **kwargs):
    return ValuesFetcher(transport=httpx.MockTransport(handler), **kwargs)


class TestValuesFetcher:
    """Test cases for ValuesFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_success_returns_body(self):
        """Test that a 200 response yields the full body."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, content=VALUES_YAML)

        fetcher = make_fetcher(handler)
        try:
            body = await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert body == VALUES_YAML
        assert len(requests) == 1
        assert str(requests[0].url) == "https://raw.githubusercontent.com/org/repo/main/values.yaml"
        assert requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_fetch_sends_fixed_headers(self):
        """Test that the user agent and accept list are always sent."""
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, content=b"a: 1\n")

        fetcher = make_fetcher(handler)
        try:
            await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert seen["user-agent"] == "helm-values-schema-generator/1.0"
        assert seen["accept"] == "text/plain, application/x-yaml, */*"

    @pytest.mark.asyncio
    async def test_fetch_not_found(self):
        """Test that upstream 404 maps to FetchFailedError with the status."""
        fetcher = make_fetcher(lambda request: httpx.Response(404, content=b"404: Not Found"))
        try:
            with pytest.raises(FetchFailedError) as exc_info:
                await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert exc_info.value.error == "download_failed"
        assert exc_info.value.status_code == 400
        assert "HTTP 404" in exc_info.value.message
        assert exc_info.value.details["status_code"] == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [201, 301, 500, 503])
    async def test_fetch_non_ok_status(self, status_code):
        """Test that every status other than 200 is a failure."""
        fetcher = make_fetcher(lambda request: httpx.Response(status_code, content=b"x"))
        try:
            with pytest.raises(FetchFailedError) as exc_info:
                await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert f"HTTP {status_code}" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_fetch_transport_error(self):
        """Test that connection failures map to FetchFailedError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)
        try:
            with pytest.raises(FetchFailedError) as exc_info:
                await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert "connection refused" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_fetch_body_read_failure(self):
        """Test that a body that cannot be fully read maps to FetchFailedError."""
        def handler(request):
            return httpx.Response(200, stream=BrokenStream())

        fetcher = make_fetcher(handler)
        try:
            with pytest.raises(FetchFailedError) as exc_info:
                await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert "failed to read response body" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, httpx.ReadError)

    @pytest.mark.asyncio
    async def test_fetch_whole_operation_timeout(self):
        """Test that a slow upstream is cut off by the overall timeout."""
        async def handler(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, content=b"a: 1\n")

        fetcher = make_fetcher(handler, timeout=0.05)
        try:
            with pytest.raises(FetchFailedError) as exc_info:
                await fetcher.fetch("/org/repo/main/values.yaml")
        finally:
            await fetcher.close()

        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_fetch_never_calls_upstream_for_invalid_path(self):
        """Test that a path without a leading slash is refused locally."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        fetcher = make_fetcher(handler)
        try:
            with pytest.raises(FetchFailedError):
                await fetcher.fetch("evil.example.com/values.yaml")
        finally:
            await fetcher.close()

        assert calls == []

    def test_build_url_keeps_origin_host(self):
        """Test that caller paths cannot change the upstream host."""
        fetcher = ValuesFetcher("https://raw.githubusercontent.com/")

        url = fetcher.build_url("/@evil.example.com/values.yaml")
        assert url.host == "raw.githubusercontent.com"

        url = fetcher.build_url("//evil.example.com/values.yaml")
        assert url.host == "raw.githubusercontent.com"

    def test_custom_origin(self):
        """Test that the origin comes from configuration."""
        fetcher = ValuesFetcher("http://mirror.internal:8081")

        url = fetcher.build_url("/charts/values.yaml")
        assert str(url) == "http://mirror.internal:8081/charts/values.yaml"
