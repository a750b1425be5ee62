"""Tests for HTTP I/O."""

import pytest
from pytest_httpserver import HTTPServer
from werkzeug import Request, Response

from trackstream.io.http_sync import HTTPByteSource, open_http_source
from trackstream.io.http_async import HTTPAsyncByteSource, open_http_source_async, close_global_client
from trackstream.io.base import RangeNotSupportedError, RANGE_FALLBACK_MAX

LAST_MODIFIED = "Sat, 14 Mar 2015 09:26:53 GMT"


class _RangeServerMixin:
    """Test HTTP server with range, no-range and big-no-range objects."""

    def setup_method(self):
        """Set up test HTTP server."""
        self.test_data = b"0123456789" * 100  # 1000 bytes
        self.server = HTTPServer(host="127.0.0.1", port=0)
        self.server.expect_request("/test").respond_with_handler(self._handle_request)
        self.server.expect_request("/no-ranges").respond_with_handler(self._handle_no_ranges)
        self.server.expect_request("/big-no-ranges").respond_with_handler(self._handle_big_no_ranges)
        self.server.expect_request("/missing").respond_with_data("nope", status=404)
        self.server.start()
        self.base_url = f"http://127.0.0.1:{self.server.port}"

    def teardown_method(self):
        """Clean up test HTTP server."""
        self.server.stop()

    def _handle_request(self, request: Request) -> Response:
        """Handle requests with range support."""
        if request.method == "HEAD":
            return Response(
                status=200,
                headers={
                    "Content-Length": str(len(self.test_data)),
                    "Accept-Ranges": "bytes",
                    "Last-Modified": LAST_MODIFIED,
                }
            )

        range_header = request.headers.get("Range")
        if range_header:
            # Parse range header: bytes=start-end
            range_spec = range_header.replace("bytes=", "")
            start, end = map(int, range_spec.split("-"))
            if start >= len(self.test_data):
                return Response(status=416)
            data = self.test_data[start:end + 1]

            return Response(
                data,
                status=206,
                headers={
                    "Content-Range": f"bytes {start}-{start + len(data) - 1}/{len(self.test_data)}",
                    "Content-Length": str(len(data))
                }
            )

        return Response(self.test_data, status=200)

    def _handle_no_ranges(self, request: Request) -> Response:
        """Handle requests without range support (small file)."""
        small_data = b"0123456789"  # 10 bytes < RANGE_FALLBACK_MAX

        if request.method == "HEAD":
            return Response(
                status=200,
                headers={
                    "Content-Length": str(len(small_data)),
                    "Accept-Ranges": "none"
                }
            )

        # Always return full content regardless of Range header
        return Response(small_data, status=200)

    def _handle_big_no_ranges(self, request: Request) -> Response:
        """Handle requests without range support (big file)."""
        if request.method == "HEAD":
            return Response(
                status=200,
                headers={
                    "Content-Length": str(RANGE_FALLBACK_MAX + 1000),
                    "Accept-Ranges": "none"
                }
            )

        return Response(b"x" * (RANGE_FALLBACK_MAX + 1000), status=200)


class TestHTTPByteSource(_RangeServerMixin):
    """Test synchronous HTTP byte source."""

    def test_head_metadata(self):
        """Test size and Last-Modified discovery."""
        source = HTTPByteSource(f"{self.base_url}/test")

        assert source.content_length == 1000
        assert source.last_modified.year == 2015
        assert source.requests_made == 1  # HEAD

    def test_sequential_range_reads(self):
        """Test cursor-driven range requests."""
        source = HTTPByteSource(f"{self.base_url}/test")

        source.seek(10)
        assert source.read(10) == b"0123456789"
        assert source.read(5) == b"01234"

        # Check bytes_fetched accounting
        assert source.bytes_fetched == 15
        assert source.requests_made == 3  # 1 HEAD + 2 GET

    def test_read_clipped_at_end(self):
        """Test reads stop at the advertised size."""
        source = HTTPByteSource(f"{self.base_url}/test")

        source.seek(995)
        assert source.read(100) == b"56789"
        assert source.read(100) == b""
        assert source.requests_made == 2  # no request past the end

    def test_no_ranges_small_file(self):
        """Test fallback to full GET for small files without range support."""
        source = HTTPByteSource(f"{self.base_url}/no-ranges")

        assert source.read(5) == b"01234"
        assert source.read(5) == b"56789"
        assert source.read(5) == b""

        # bytes_fetched should be the full file size (downloaded once)
        assert source.bytes_fetched == 10
        assert source.requests_made == 2  # 1 HEAD + 1 GET

    def test_no_ranges_big_file(self):
        """Test big files without range support are refused before any GET."""
        with pytest.raises(RangeNotSupportedError):
            HTTPByteSource(f"{self.base_url}/big-no-ranges")

        gets = [r for r, _ in self.server.log if r.method == "GET"]
        assert gets == []

    def test_missing_object(self):
        """Test HEAD failure surfaces as IOError."""
        with pytest.raises(IOError, match="404"):
            HTTPByteSource(f"{self.base_url}/missing")

    def test_context_manager(self):
        """Test context manager usage."""
        with HTTPByteSource(f"{self.base_url}/test") as source:
            assert source.read(10) == b"0123456789"
            assert source.bytes_fetched == 10
            assert source.requests_made == 2  # 1 HEAD + 1 GET

    def test_factory_function(self):
        """Test factory function."""
        source = open_http_source(f"{self.base_url}/test")
        assert isinstance(source, HTTPByteSource)
        assert source.read(10) == b"0123456789"


class TestHTTPAsyncByteSource(_RangeServerMixin):
    """Test asynchronous HTTP byte source."""

    @pytest.mark.asyncio
    async def test_sequential_range_reads(self):
        """Test basic async range reads."""
        try:
            source = await open_http_source_async(f"{self.base_url}/test")

            await source.seek(10)
            assert await source.read(10) == b"0123456789"
            assert await source.read(5) == b"01234"

            assert source.content_length == 1000
            assert source.bytes_fetched == 15
            assert source.requests_made == 3  # 1 HEAD + 2 GET
        finally:
            await close_global_client()

    @pytest.mark.asyncio
    async def test_no_ranges_small_file(self):
        """Test async fallback to full GET for small files without range support."""
        try:
            source = await open_http_source_async(f"{self.base_url}/no-ranges")

            assert await source.read(5) == b"01234"
            assert await source.read(5) == b"56789"

            assert source.bytes_fetched == 10
            assert source.requests_made == 2  # 1 HEAD + 1 GET
        finally:
            await close_global_client()

    @pytest.mark.asyncio
    async def test_read_clipped_at_end(self):
        """Test async reads stop at the advertised size."""
        try:
            source = HTTPAsyncByteSource(f"{self.base_url}/test")
            await source.seek(998)
            assert await source.read(16) == b"89"
            assert await source.read(16) == b""
        finally:
            await close_global_client()

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test async context manager usage."""
        try:
            async with await open_http_source_async(f"{self.base_url}/test") as source:
                assert await source.read(10) == b"0123456789"
                assert source.bytes_fetched == 10
                assert source.requests_made == 2  # 1 HEAD + 1 GET
        finally:
            await close_global_client()

    @pytest.mark.asyncio
    async def test_no_ranges_big_file(self):
        """Test async sources refuse big files without range support on open."""
        try:
            with pytest.raises(RangeNotSupportedError):
                await open_http_source_async(f"{self.base_url}/big-no-ranges")
        finally:
            await close_global_client()
