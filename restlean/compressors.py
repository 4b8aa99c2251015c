"""Reusable gzip/zlib writers and gzip readers, and providers that pool them."""

import abc
import gzip
import io
import queue
import threading
import zlib

_GZIP_WBITS = 31
_ZLIB_WBITS = 15


class _StreamCompressor:
    """A deflate based compressor writing into a sink; reusable through reset()."""

    _wbits = _ZLIB_WBITS

    def __init__(self, sink=None, level=zlib.Z_BEST_SPEED):
        self._level = level
        self._start(sink if sink is not None else io.BytesIO())

    def _start(self, sink):
        self._sink = sink
        self._compressor = zlib.compressobj(self._level, zlib.DEFLATED, self._wbits)
        self._closed = False

    def _write(self, data):
        if self._closed:
            raise ValueError("write to a closed compressor")
        data = bytes(data)
        chunk = self._compressor.compress(data)
        if chunk:
            self._sink.write(chunk)
        return len(data)

    def _flush(self):
        if self._closed:
            return
        chunk = self._compressor.flush(zlib.Z_SYNC_FLUSH)
        if chunk:
            self._sink.write(chunk)

    def _close(self):
        if self._closed:
            return
        self._sink.write(self._compressor.flush(zlib.Z_FINISH))
        self._closed = True


class GzipWriter(_StreamCompressor):
    """Writes a gzip stream."""

    _wbits = _GZIP_WBITS

    def reset(self, sink):
        """Discard any state and start a fresh gzip stream that writes to sink."""
        self._start(sink)

    def write(self, data):
        """Compress data into the sink; return the number of input bytes taken."""
        return self._write(data)

    def flush(self):
        """Write all pending compressed data to the sink."""
        self._flush()

    def close(self):
        """Finish the gzip stream, writing its trailer to the sink."""
        self._close()


class ZlibWriter(_StreamCompressor):
    """Writes a zlib stream."""

    _wbits = _ZLIB_WBITS

    def reset(self, sink):
        """Discard any state and start a fresh zlib stream that writes to sink."""
        self._start(sink)

    def write(self, data):
        """Compress data into the sink; return the number of input bytes taken."""
        return self._write(data)

    def flush(self):
        """Write all pending compressed data to the sink."""
        self._flush()

    def close(self):
        """Finish the zlib stream, writing its trailer to the sink."""
        self._close()


class GzipReader:
    """Reads decompressed data from a gzip stream; reusable through reset()."""

    def __init__(self, source=None):
        if source is None:
            source = _empty_gzip_stream()
        self.reset(source)

    def reset(self, source):
        """Start reading from a new gzip source (bytes or a binary file object)."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self._file = gzip.GzipFile(fileobj=source, mode="rb")

    def read(self, size=-1):
        """Read up to size decompressed bytes; all remaining when size is negative."""
        return self._file.read(size)


class CompressorProvider(abc.ABC):
    """Hands out compressors and decompressors that must be given back afterwards."""

    @abc.abstractmethod
    def acquire_gzip_writer(self):
        """Return a GzipWriter; call reset() before use."""

    @abc.abstractmethod
    def release_gzip_writer(self, writer):
        """Give back an acquired GzipWriter."""

    @abc.abstractmethod
    def acquire_gzip_reader(self):
        """Return a GzipReader."""

    @abc.abstractmethod
    def release_gzip_reader(self, reader):
        """Give back an acquired GzipReader."""

    @abc.abstractmethod
    def acquire_zlib_writer(self):
        """Return a ZlibWriter; call reset() before use."""

    @abc.abstractmethod
    def release_zlib_writer(self, writer):
        """Give back an acquired ZlibWriter."""


class _Pool:
    """An unbounded thread-safe pool that creates objects on demand."""

    def __init__(self, factory):
        self._factory = factory
        self._items = []
        self._lock = threading.Lock()

    def get(self):
        with self._lock:
            if self._items:
                return self._items.pop()
        return self._factory()

    def put(self, item):
        with self._lock:
            self._items.append(item)


class SyncPoolCompressors(CompressorProvider):
    """A provider backed by unbounded pools that start empty."""

    def __init__(self):
        self.gzip_writer_pool = _Pool(_new_gzip_writer)
        self.gzip_reader_pool = _Pool(_new_gzip_reader)
        self.zlib_writer_pool = _Pool(_new_zlib_writer)

    def acquire_gzip_writer(self):
        return self.gzip_writer_pool.get()

    def release_gzip_writer(self, writer):
        self.gzip_writer_pool.put(writer)

    def acquire_gzip_reader(self):
        return self.gzip_reader_pool.get()

    def release_gzip_reader(self, reader):
        self.gzip_reader_pool.put(reader)

    def acquire_zlib_writer(self):
        return self.zlib_writer_pool.get()

    def release_zlib_writer(self, writer):
        self.zlib_writer_pool.put(writer)


class BoundedCachedCompressors(CompressorProvider):
    """A provider with a prefilled cache of fixed size.

    When every cached resource is in use, a new unmanaged one is returned.
    Released resources are kept only while the cache has room for them.
    """

    def __init__(self, writers_capacity, readers_capacity):
        self.writers_capacity = writers_capacity
        self.readers_capacity = readers_capacity
        self._gzip_writers = queue.Queue(maxsize=max(writers_capacity, 0))
        self._zlib_writers = queue.Queue(maxsize=max(writers_capacity, 0))
        self._gzip_readers = queue.Queue(maxsize=max(readers_capacity, 0))
        for _ in range(writers_capacity):
            self._gzip_writers.put_nowait(_new_gzip_writer())
            self._zlib_writers.put_nowait(_new_zlib_writer())
        for _ in range(readers_capacity):
            self._gzip_readers.put_nowait(_new_gzip_reader())

    @staticmethod
    def _take(cache, factory):
        try:
            return cache.get_nowait()
        except queue.Empty:
            return factory()

    @staticmethod
    def _give(cache, capacity, item):
        if cache.qsize() < capacity:
            try:
                cache.put_nowait(item)
            except queue.Full:
                pass

    def acquire_gzip_writer(self):
        return self._take(self._gzip_writers, _new_gzip_writer)

    def release_gzip_writer(self, writer):
        self._give(self._gzip_writers, self.writers_capacity, writer)

    def acquire_gzip_reader(self):
        return self._take(self._gzip_readers, _new_gzip_reader)

    def release_gzip_reader(self, reader):
        self._give(self._gzip_readers, self.readers_capacity, reader)

    def acquire_zlib_writer(self):
        return self._take(self._zlib_writers, _new_zlib_writer)

    def release_zlib_writer(self, writer):
        self._give(self._zlib_writers, self.writers_capacity, writer)


def _new_gzip_writer():
    return GzipWriter(io.BytesIO(), zlib.Z_BEST_SPEED)


def _new_zlib_writer():
    return ZlibWriter(io.BytesIO(), zlib.Z_BEST_SPEED)


def _empty_gzip_stream():
    buffer = io.BytesIO()
    writer = GzipWriter(buffer)
    writer.close()
    return buffer.getvalue()


def _new_gzip_reader():
    provider = current_compressor_provider()
    writer = provider.acquire_gzip_writer()
    try:
        buffer = io.BytesIO()
        writer.reset(buffer)
        writer.flush()
        writer.close()
    finally:
        provider.release_gzip_writer(writer)
    return GzipReader(buffer.getvalue())


_current_provider = SyncPoolCompressors()


def current_compressor_provider():
    """Return the provider in use; initially a SyncPoolCompressors."""
    return _current_provider


def set_compressor_provider(provider):
    """Replace the provider in use."""
    global _current_provider
    if provider is None:
        raise ValueError("cannot set compressor provider to None")
    _current_provider = provider