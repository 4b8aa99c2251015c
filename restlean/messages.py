"""HTTP headers, requests and responses as seen by routes and filters."""

from dataclasses import dataclass, field
from http import HTTPStatus
from urllib.parse import urlsplit

from .constants import HEADER_ACCEPT


def _canonical(name):
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class Headers:
    """A case-insensitive, multi-valued collection of header fields."""

    def __init__(self, initial=None):
        self._fields = {}
        for name, value in (initial or {}).items():
            if isinstance(value, str):
                self.add(name, value)
            else:
                for each in value:
                    self.add(name, each)

    def get(self, name):
        """Return the first value for name, or an empty string."""
        values = self._fields.get(_canonical(name))
        return values[0] if values else ""

    def get_all(self, name):
        """Return all values for name, in the order they were added."""
        return list(self._fields.get(_canonical(name), []))

    def set(self, name, value):
        """Replace all values for name with a single value."""
        self._fields[_canonical(name)] = [value]

    def add(self, name, value):
        """Append a value for name."""
        self._fields.setdefault(_canonical(name), []).append(value)

    def __contains__(self, name):
        return bool(self._fields.get(_canonical(name)))

    def __delitem__(self, name):
        key = _canonical(name)
        if key not in self._fields:
            raise KeyError(name)
        self._fields.pop(key)

    def __iter__(self):
        return iter(list(self._fields))

    def __len__(self):
        return len(self._fields)

    def __repr__(self):
        return f"Headers({self._fields!r})"


@dataclass
class Request:
    """An incoming HTTP request; a full URL given as path is split into path and query."""

    method: str = "GET"
    path: str = "/"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    query: str = ""
    path_parameters: dict = field(default_factory=dict)
    attributes: dict = field(default_factory=dict)

    def __post_init__(self):
        if "://" in self.path or "?" in self.path:
            parts = urlsplit(self.path)
            self.path = parts.path
            if parts.query:
                self.query = parts.query
        if not self.path:
            self.path = "/"


class Response:
    """An outgoing HTTP response.

    Without a writer it records status, headers and body itself; with a writer
    (anything having header(), write_header() and write()) it passes them on.
    """

    def __init__(self, writer=None, *, request_accept="", route_produces=None, pretty_print=True):
        self.writer = writer
        self.request_accept = request_accept
        self.route_produces = list(route_produces or [])
        self.pretty_print = pretty_print
        self.status_code = int(HTTPStatus.OK)
        self.content_length = 0
        self._headers = Headers()
        self._body = bytearray()
        self._header_written = False

    @property
    def body(self):
        """The bytes written so far when recording."""
        return bytes(self._body)

    def header(self):
        """Return the headers to be sent."""
        if self.writer is not None:
            return self.writer.header()
        return self._headers

    def add_header(self, name, value):
        """Append a header value; return self for chaining."""
        self.header().add(name, value)
        return self

    def write_header(self, status):
        """Send the status code; only the first call has effect."""
        if self._header_written:
            return
        self._header_written = True
        self.status_code = int(status)
        if self.writer is not None:
            self.writer.write_header(status)

    def write(self, data):
        """Write body data, sending status 200 first if none was sent."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not self._header_written:
            self.write_header(HTTPStatus.OK)
        if self.writer is not None:
            self.writer.write(data)
        else:
            self._body.extend(data)
        self.content_length += len(data)
        return len(data)

    def write_error_string(self, status, message):
        """Send status with message as the body."""
        self.error = message
        self.write_header(status)
        self.write(message)


def new_basic_request_response(writer, request):
    """Pair a request with a response for writer that knows the request's Accept header."""
    response = Response(writer, request_accept=request.headers.get(HEADER_ACCEPT))
    return request, response