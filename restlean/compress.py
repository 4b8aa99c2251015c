"""Response writers that gzip or deflate what is written to them."""

from .compressors import GzipWriter, ZlibWriter, current_compressor_provider
from .constants import (
    ENCODING_DEFLATE,
    ENCODING_GZIP,
    HEADER_ACCEPT_ENCODING,
    HEADER_CONTENT_ENCODING,
)


class CompressingResponseWriter:
    """Wraps a response writer and compresses everything written through it.

    The wrapped writer must offer header(), write_header() and write().
    """

    def __init__(self, writer, encoding):
        if encoding not in (ENCODING_GZIP, ENCODING_DEFLATE):
            raise ValueError("Unknown encoding:" + str(encoding))
        writer.header().set(HEADER_CONTENT_ENCODING, encoding)
        self.writer = writer
        self.encoding = encoding
        provider = current_compressor_provider()
        if encoding == ENCODING_GZIP:
            compressor = provider.acquire_gzip_writer()
        else:
            compressor = provider.acquire_zlib_writer()
        compressor.reset(writer)
        self._compressor = compressor

    @property
    def closed(self):
        """True once close() has been called."""
        return self._compressor is None

    def header(self):
        """Return the headers of the wrapped writer."""
        return self.writer.header()

    def write_header(self, status):
        """Send the status code through the wrapped writer."""
        self.writer.write_header(status)

    def write(self, data):
        """Compress data onto the wrapped writer; return the number of bytes taken."""
        if self.closed:
            raise ValueError("Compressing error: tried to write data using closed compressor")
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._compressor.write(data)

    def close(self):
        """Finish the compressed stream and give the compressor back to the provider."""
        if self.closed:
            raise ValueError("Compressing error: tried to close already closed compressor")
        compressor = self._compressor
        compressor.close()
        provider = current_compressor_provider()
        if self.encoding == ENCODING_GZIP and isinstance(compressor, GzipWriter):
            provider.release_gzip_writer(compressor)
        elif self.encoding == ENCODING_DEFLATE and isinstance(compressor, ZlibWriter):
            provider.release_zlib_writer(compressor)
        self._compressor = None

    def hijack(self):
        """Take over the connection of the wrapped writer, if it supports that."""
        hijack = getattr(self.writer, "hijack", None)
        if hijack is None:
            raise TypeError("ResponseWriter doesn't support Hijacker interface")
        return hijack()


def wants_compressed_response(request_headers, response_headers):
    """Decide from Accept-Encoding whether and how to compress.

    Returns a pair (compress, encoding). No compression is wanted when the
    response already has a Content-Encoding. When both encodings are accepted
    the one appearing first wins.
    """
    if response_headers.get(HEADER_CONTENT_ENCODING):
        return False, ""
    accepted = request_headers.get(HEADER_ACCEPT_ENCODING)
    gzip_at = accepted.find(ENCODING_GZIP)
    deflate_at = accepted.find(ENCODING_DEFLATE)
    if gzip_at == -1:
        return deflate_at != -1, ENCODING_DEFLATE
    if deflate_at == -1:
        return True, ENCODING_GZIP
    if gzip_at < deflate_at:
        return True, ENCODING_GZIP
    return True, ENCODING_DEFLATE