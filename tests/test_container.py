import gzip
import re
from types import SimpleNamespace

import pytest

from restlean.container import Container, ServeMux, fixed_prefix_path
from restlean.messages import Headers, Request, Response


def _tokens(path):
    if path in ("", "/"):
        return []
    return path.strip("/").split("/")


def _pattern(template):
    parts = []
    for token in _tokens(template):
        if token.startswith("{"):
            parts.append("(.*)" if token.endswith(":*}") else "([^/]+?)")
        else:
            parts.append(re.escape(token))
    return re.compile("^" + "".join("/" + part for part in parts) + "(/.*)?$")


class FakeService:
    def __init__(self):
        self.root_path = ""
        self.routes = []
        self.filters = []
        self.path_expr = None

    def path(self, root):
        self.root_path = root
        self.path_expr = SimpleNamespace(tokens=_tokens(root), matcher=_pattern(root))
        return self

    def route(self, method, sub, function, filters=()):
        if not self.root_path:
            self.path("/")
        full_parts = _tokens(self.root_path) + _tokens(sub)
        route = SimpleNamespace(
            method=method,
            path="/" + "/".join(full_parts),
            path_parts=full_parts,
            has_custom_verb=False,
            function=function,
            filters=list(filters),
            path_expr=SimpleNamespace(matcher=_pattern("/" + sub.lstrip("/"))),
            content_encoding_enabled=None,
        )
        self.routes.append(route)
        return self


def dummy(request, response):
    response.write("dummy")


def _get(path, headers=None):
    return Request(method="GET", path=path, headers=Headers(headers or {}))


def test_compute_allowed_methods():
    container = Container()
    service = FakeService().path("/users")
    service.route("GET", "{i}", dummy).route("POST", "{i}", dummy)
    container.add(service)
    request = _get("http://api.example.com/users/1")
    assert container.compute_allowed_methods(request) == ["GET", "POST"]


def test_handle_with_filter_runs_all_filters():
    calls = {}

    def pre(request, response, chain):
        calls["pre"] = True
        request.attributes["prefilterContextSet"] = "true"
        chain.process_filter(request, response)

    def post(request, response, chain):
        calls["post"] = True
        request.attributes["postfilterContextSet"] = "true"
        chain.process_filter(request, response)

    def handler(writer, request):
        calls["handler"] = True
        calls["context"] = (
            "prefilterContextSet" in request.attributes and "postfilterContextSet" in request.attributes
        )
        writer.write(b"ok")

    container = Container()
    container.filter(pre)
    container.handle_with_filter("/", handler)
    container.filter(post)

    recorder = Response()
    container.serve_http(recorder, _get("/"))
    assert recorder.status_code == 200
    assert recorder.body == b"ok"
    assert calls == {"pre": True, "post": True, "handler": True, "context": True}


def test_add_and_remove():
    root = FakeService().path("/").route("GET", "/", lambda q, r: r.write("root"))
    users = FakeService().path("/users").route("GET", "", lambda q, r: r.write("users"))
    container = Container()
    container.add(root)
    container.add(users)

    recorder = Response()
    container.serve_http(recorder, _get("/users"))
    assert recorder.body == b"users"

    container.remove(users)
    assert container.registered_web_services() == [root]
    assert container.registered_on_root is True
    recorder = Response()
    container.serve_http(recorder, _get("/"))
    assert recorder.body == b"root"
    recorder = Response()
    container.serve_http(recorder, _get("/users"))
    assert recorder.status_code == 404
    assert recorder.body == b"404: Page Not Found"

    container.remove(root)
    assert container.registered_web_services() == []
    assert container.registered_on_root is False
    recorder = Response()
    container.serve_http(recorder, _get("/"))
    assert recorder.status_code == 404
    assert recorder.body == b"404 page not found\n"


def test_duplicate_root_path_is_rejected():
    container = Container()
    container.add(FakeService().path("/users"))
    with pytest.raises(ValueError):
        container.add(FakeService().path("/users"))


@pytest.fixture
def compressing_container():
    container = Container()
    container.add(FakeService().path("/").route("GET", "/", dummy))
    return container


def test_no_accept_header_encoding_disabled(compressing_container):
    recorder = Response()
    compressing_container.serve_http(recorder, _get("/"))
    assert recorder.status_code == 200
    assert recorder.body == b"dummy"


def test_gzip_accept_header_encoding_disabled(compressing_container):
    recorder = Response()
    compressing_container.serve_http(recorder, _get("/", {"accept-encoding": "gzip"}))
    assert recorder.status_code == 200
    assert recorder.body == b"dummy"


def test_no_accept_header_encoding_enabled(compressing_container):
    compressing_container.enable_content_encoding(True)
    recorder = Response()
    compressing_container.serve_http(recorder, _get("/"))
    assert recorder.status_code == 200
    assert recorder.body == b"dummy"


def test_gzip_accept_header_encoding_enabled(compressing_container):
    compressing_container.enable_content_encoding(True)
    recorder = Response()
    compressing_container.serve_http(recorder, _get("/", {"accept-encoding": "gzip"}))
    assert recorder.status_code == 200
    assert recorder.header().get("Content-Encoding") == "gzip"
    assert recorder.body != b"dummy"
    assert gzip.decompress(recorder.body) == b"dummy"


def test_already_compressed_response_is_left_alone(compressing_container):
    compressing_container.enable_content_encoding(True)
    recorder = Response()
    recorder.header().set("content-encoding", "gzip")
    compressing_container.serve_http(recorder, _get("/", {"accept-encoding": "gzip"}))
    assert recorder.body == b"dummy"


def test_dispatch_unknown_path_writes_404():
    container = Container()
    container.add(FakeService().path("/users").route("GET", "", dummy))
    recorder = Response()
    container.dispatch(recorder, _get("/nothing"))
    assert recorder.status_code == 404
    assert recorder.body == b"404: Page Not Found"


def test_dispatch_wrong_method_writes_405():
    container = Container()
    container.add(FakeService().path("/users").route("GET", "", dummy))
    recorder = Response()
    container.dispatch(recorder, Request(method="DELETE", path="/users"))
    assert recorder.status_code == 405


def test_dispatch_requires_writer_and_request():
    container = Container()
    with pytest.raises(ValueError):
        container.dispatch(None, _get("/"))
    with pytest.raises(ValueError):
        container.dispatch(Response(), None)


def test_dispatch_extracts_path_parameters():
    seen = {}

    def find(request, response):
        seen.update(request.path_parameters)
        response.write("found")

    container = Container()
    container.add(FakeService().path("/users").route("GET", "{id}", find))
    recorder = Response()
    container.dispatch(recorder, _get("/users/7"))
    assert recorder.body == b"found"
    assert seen == {"id": "7"}


def test_filter_order_container_service_route():
    def writer_filter(text):
        def apply(request, response, chain):
            response.write(text)
            chain.process_filter(request, response)

        return apply

    service = FakeService().path("/")
    service.filters.append(writer_filter("service-"))
    service.route("GET", "/foo", lambda q, r: r.write("foo"), filters=[writer_filter("route-")])
    container = Container()
    container.filter(writer_filter("global-"))
    container.add(service)
    recorder = Response()
    container.dispatch(recorder, _get("http://example.com/foo"))
    assert recorder.body == b"global-service-route-foo"


def test_failure_propagates_by_default():
    def boom(request, response):
        raise RuntimeError("boom")

    container = Container()
    container.add(FakeService().path("/").route("GET", "/", boom))
    with pytest.raises(RuntimeError):
        container.dispatch(Response(), _get("/"))


def test_recovery_writes_500():
    def boom(request, response):
        raise RuntimeError("boom")

    container = Container()
    container.do_not_recover(False)
    container.add(FakeService().path("/").route("GET", "/", boom))
    recorder = Response()
    container.dispatch(recorder, _get("/"))
    assert recorder.status_code == 500
    assert recorder.body.startswith(b"recover from panic situation: - boom\r\n")


def test_custom_service_error_handler():
    received = []

    def handler(error, request, response):
        received.append(error.code)
        response.write_error_string(418, "teapot")

    container = Container()
    container.service_error_handler(handler)
    container.add(FakeService().path("/users"))
    recorder = Response()
    container.dispatch(recorder, _get("/elsewhere"))
    assert received == [404]
    assert recorder.status_code == 418
    assert recorder.body == b"teapot"


def test_serve_mux_rejects_duplicates_and_prefers_longest():
    mux = ServeMux()
    mux.handle("/", lambda w, r: w.write("root"))
    mux.handle("/p/", lambda w, r: w.write("p"))
    with pytest.raises(ValueError):
        mux.handle("/p/", lambda w, r: None)
    recorder = Response()
    mux.serve_http(recorder, _get("/p/x"))
    assert recorder.body == b"p"
    recorder = Response()
    mux.serve_http(recorder, _get("/q"))
    assert recorder.body == b"root"


@pytest.mark.parametrize(
    "pathspec, expected",
    [("/users", "/users"), ("/users/{id}", "/users/"), ("{p}/q", ""), ("/", "/")],
)
def test_fixed_prefix_path(pathspec, expected):
    assert fixed_prefix_path(pathspec) == expected