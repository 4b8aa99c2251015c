"""A container that multiplexes HTTP requests over web services and their routes."""

import logging
import threading
import traceback
from http import HTTPStatus

from .compress import CompressingResponseWriter, wants_compressed_response
from .constants import HEADER_ACCEPT
from .curly import detect_web_service, select_routes
from .custom_verb import has_custom_verb, remove_custom_verb
from .filter import FilterChain
from .messages import Response

_log = logging.getLogger(__name__)

_NOT_FOUND_BODY = b"404 page not found\n"


def _invoke(handler, writer, request):
    serve = getattr(handler, "serve_http", None)
    if serve is not None:
        serve(writer, request)
    else:
        handler(writer, request)


def _tokenize_path(path):
    if path == "/":
        return []
    return path.strip("/").split("/")


class _ServiceError(Exception):
    """A failure to select a route, carrying the status to answer with."""

    def __init__(self, code, message, header=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.header = dict(header or {})


def _is_service_error(error):
    return hasattr(error, "code") and hasattr(error, "message")


class _PathMethodRouter:
    """Selects a route by its path template and then by its HTTP method."""

    def select_route(self, services, request):
        tokens = _tokenize_path(request.path)
        service = detect_web_service(tokens, services)
        if service is None:
            raise _ServiceError(int(HTTPStatus.NOT_FOUND), "404: Page Not Found")
        candidates = select_routes(service, tokens)
        if not candidates:
            raise _ServiceError(int(HTTPStatus.NOT_FOUND), "404: Page Not Found")
        for candidate in candidates:
            if candidate.route.method == request.method:
                return service, candidate.route
        raise _ServiceError(int(HTTPStatus.METHOD_NOT_ALLOWED), "405: Method is not allowed")


def _extract_parameters(route, path):
    url_parts = _tokenize_path(path)
    parameters = {}
    custom = getattr(route, "has_custom_verb", False)
    for position, key in enumerate(route.path_parts):
        value = url_parts[position] if position < len(url_parts) else ""
        if custom and has_custom_verb(key):
            key = remove_custom_verb(key)
            value = remove_custom_verb(value)
        if key.startswith("{") and key.endswith("}"):
            name, separator, expression = key[1:-1].partition(":")
            if separator and expression == "*":
                parameters[name] = "/".join(url_parts[position:])
            else:
                parameters[name] = value
    return parameters


class ServeMux:
    """Maps URL path patterns to handlers; patterns ending in '/' match whole subtrees."""

    def __init__(self):
        self._handlers = {}

    def __contains__(self, pattern):
        return pattern in self._handlers

    def handle(self, pattern, handler):
        """Register handler for pattern; registering a pattern twice is an error."""
        if not pattern:
            raise ValueError("invalid pattern")
        if handler is None:
            raise ValueError("nil handler")
        if pattern in self._handlers:
            raise ValueError("multiple registrations for " + pattern)
        self._handlers[pattern] = handler

    def _match(self, path):
        best = None
        for pattern, handler in self._handlers.items():
            if pattern.endswith("/"):
                if not path.startswith(pattern):
                    continue
            elif path != pattern:
                continue
            if best is None or len(pattern) > len(best[0]):
                best = (pattern, handler)
        return None if best is None else best[1]

    def serve_http(self, writer, request):
        """Call the handler of the most specific matching pattern, or answer 404."""
        handler = self._match(request.path)
        if handler is None:
            writer.header().set("Content-Type", "text/plain; charset=utf-8")
            writer.write_header(HTTPStatus.NOT_FOUND)
            writer.write(_NOT_FOUND_BODY)
            return
        _invoke(handler, writer, request)


def log_stack_on_recover(reason, writer):
    """Log the failure with its stack and write both as a 500 response."""
    lines = [f"recover from panic situation: - {reason}\r\n"]
    frames = traceback.extract_tb(reason.__traceback__) if isinstance(reason, BaseException) else []
    lines.extend(f"    {frame.filename}:{frame.lineno}\r\n" for frame in frames)
    text = "".join(lines)
    _log.error(text)
    writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
    writer.write(text.encode("utf-8"))


def write_service_error(error, request, response):
    """Copy the error's headers to the response and write its code and message."""
    for name, values in getattr(error, "header", {}).items():
        for value in values:
            response.header().add(name, value)
    response.write_error_string(error.code, error.message)


def fixed_prefix_path(pathspec):
    """Return the part of pathspec before its first template variable."""
    begin = pathspec.find("{")
    return pathspec if begin == -1 else pathspec[:begin]


class Container:
    """Holds web services, container filters and a ServeMux that dispatches to them.

    A router offers select_route(services, request) returning (service, route) and
    raising an exception with ``code`` and ``message`` when no route applies.
    """

    def __init__(self, router=None):
        self._lock = threading.RLock()
        self._web_services = []
        self.serve_mux = ServeMux()
        self._registered_on_root = False
        self._filters = []
        self._do_not_recover = True
        self._recover_handle_func = log_stack_on_recover
        self._service_error_handle_func = write_service_error
        self._router = router if router is not None else _PathMethodRouter()
        self._content_encoding_enabled = False

    @property
    def registered_on_root(self):
        """True when the dispatcher is registered on '/'."""
        return self._registered_on_root

    def recover_handler(self, handler):
        """Set the function called with (exception, writer) when a route fails."""
        self._recover_handle_func = handler

    def service_error_handler(self, handler):
        """Set the function called with (error, request, response) when no route applies."""
        self._service_error_handle_func = handler

    def do_not_recover(self, do_not):
        """Choose whether route failures propagate (True, the default) or become 500s."""
        self._do_not_recover = do_not

    def set_router(self, router):
        """Replace the route selector."""
        self._router = router

    def enable_content_encoding(self, enabled):
        """Allow gzip or deflate encoding of responses."""
        self._content_encoding_enabled = enabled

    def add(self, service):
        """Add a web service; a duplicate root path is an error. Returns self."""
        with self._lock:
            if not service.root_path:
                service.path("/")
            for each in self._web_services:
                if each.root_path == service.root_path:
                    _log.error("WebService with duplicate root path detected:['%s']", each.root_path)
                    raise ValueError(f"duplicate root path: {service.root_path}")
            if not self._registered_on_root:
                self._registered_on_root = self._add_handler(service, self.serve_mux, self._web_services)
            self._web_services.append(service)
        return self

    def _add_handler(self, service, serve_mux, registered):
        pattern = fixed_prefix_path(service.root_path)
        if pattern in ("/", ""):
            if "/" not in serve_mux:
                serve_mux.handle("/", self._dispatch)
            return True
        if any(each.root_path == service.root_path for each in registered):
            return False
        for each in (pattern, pattern if pattern.endswith("/") else pattern + "/"):
            if each not in serve_mux:
                serve_mux.handle(each, self._dispatch)
        return False

    def remove(self, service):
        """Remove the web service with the same root path and rebuild the ServeMux."""
        with self._lock:
            serve_mux = ServeMux()
            kept = []
            on_root = False
            for each in self._web_services:
                if each.root_path == service.root_path:
                    continue
                if not on_root:
                    on_root = self._add_handler(each, serve_mux, kept)
                kept.append(each)
            self._web_services = kept
            self.serve_mux = serve_mux
            self._registered_on_root = on_root

    def dispatch(self, writer, request):
        """Dispatch a request to the matching route of a web service."""
        if writer is None:
            raise ValueError("writer cannot be None")
        if request is None:
            raise ValueError("request cannot be None")
        self._dispatch(writer, request)

    def _dispatch(self, writer, request):
        current = writer
        try:
            try:
                with self._lock:
                    services = list(self._web_services)
                service, route = self._router.select_route(services, request)
            except Exception as error:
                if not _is_service_error(error):
                    raise

                def answer(req, resp):
                    self._service_error_handle_func(error, req, resp)

                FilterChain(filters=list(self._filters), target=answer).process_filter(
                    request, Response(current)
                )
                return

            if not isinstance(writer, CompressingResponseWriter):
                enabled = self._content_encoding_enabled
                override = getattr(route, "content_encoding_enabled", None)
                if override is not None:
                    enabled = override
                if enabled:
                    wanted, encoding = wants_compressed_response(request.headers, writer.header())
                    if wanted:
                        try:
                            current = CompressingResponseWriter(writer, encoding)
                        except ValueError as error:
                            _log.error("unable to install compressor: %s", error)
                            writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
                            return

            extract = getattr(self._router, "extract_parameters", None)
            if extract is not None:
                parameters = extract(route, service, request.path)
            else:
                parameters = _extract_parameters(route, request.path)
            wrapped_request, wrapped_response = self._wrap(route, current, request, parameters)

            filters = list(self._filters) + list(getattr(service, "filters", [])) + list(
                getattr(route, "filters", [])
            )
            if filters:
                chain = FilterChain(
                    filters=filters,
                    target=route.function,
                    parameter_docs=list(getattr(route, "parameter_docs", [])),
                    operation=getattr(route, "operation", ""),
                )
                chain.process_filter(wrapped_request, wrapped_response)
            else:
                route.function(wrapped_request, wrapped_response)
        except Exception as failure:
            if self._do_not_recover:
                raise
            self._recover_handle_func(failure, current)
        finally:
            if isinstance(current, CompressingResponseWriter) and current is not writer:
                current.close()

    @staticmethod
    def _wrap(route, writer, request, parameters):
        wrap = getattr(route, "wrap_request_response", None)
        if wrap is not None:
            return wrap(writer, request, parameters)
        request.path_parameters = parameters
        response = Response(
            writer,
            request_accept=request.headers.get(HEADER_ACCEPT),
            route_produces=getattr(route, "produces", []),
        )
        return request, response

    def serve_http(self, writer, request):
        """Serve a request through the ServeMux, compressing when enabled and wanted."""
        if not self._content_encoding_enabled or isinstance(writer, CompressingResponseWriter):
            self.serve_mux.serve_http(writer, request)
            return
        current = writer
        try:
            wanted, encoding = wants_compressed_response(request.headers, writer.header())
            if wanted:
                try:
                    current = CompressingResponseWriter(writer, encoding)
                except ValueError as error:
                    _log.error("unable to install compressor: %s", error)
                    writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
                    return
            self.serve_mux.serve_http(current, request)
        finally:
            if isinstance(current, CompressingResponseWriter):
                current.close()

    def handle(self, pattern, handler):
        """Register a handler for pattern, compressing its output when enabled."""

        def compressing(writer, request):
            if isinstance(writer, CompressingResponseWriter):
                _invoke(handler, writer, request)
                return
            current = writer
            try:
                if self._content_encoding_enabled:
                    wanted, encoding = wants_compressed_response(request.headers, writer.header())
                    if wanted:
                        try:
                            current = CompressingResponseWriter(writer, encoding)
                        except ValueError as error:
                            _log.error("unable to install compressor: %s", error)
                            writer.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)
                            return
                _invoke(handler, current, request)
            finally:
                if isinstance(current, CompressingResponseWriter):
                    current.close()

        self.serve_mux.handle(pattern, compressing)

    def handle_with_filter(self, pattern, handler):
        """Register a handler for pattern that runs behind the container filters."""

        def filtered(writer, request):
            if not self._filters:
                _invoke(handler, writer, request)
                return

            def target(req, resp):
                _invoke(handler, resp, req)

            FilterChain(filters=list(self._filters), target=target).process_filter(
                request, Response(writer)
            )

        self.handle(pattern, filtered)

    def filter(self, filter_function):
        """Append a filter run before any web service is dispatched to."""
        self._filters.append(filter_function)

    def registered_web_services(self):
        """Return a copy of the list of added web services."""
        with self._lock:
            return list(self._web_services)

    def compute_allowed_methods(self, request):
        """Return the HTTP methods of all routes whose path matches the request."""
        methods = []
        for service in self.registered_web_services():
            found = service.path_expr.matcher.search(request.path)
            if found is None:
                continue
            final = found.group(found.re.groups) or ""
            for route in service.routes:
                matched = route.path_expr.matcher.search(final)
                if matched is None:
                    continue
                last = matched.group(matched.re.groups) or ""
                if last in ("", "/"):
                    methods.append(route.method)
        return methods