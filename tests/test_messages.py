from restlean.messages import Headers, Request, Response, new_basic_request_response


def test_headers_are_case_insensitive():
    headers = Headers()
    headers.set("content-encoding", "gzip")
    assert headers.get("Content-Encoding") == "gzip"
    assert "CONTENT-ENCODING" in headers
    assert list(headers) == ["Content-Encoding"]


def test_headers_add_and_set():
    headers = Headers()
    headers.add("X-Item", "a")
    headers.add("x-item", "b")
    assert headers.get_all("X-Item") == ["a", "b"]
    assert headers.get("X-Item") == "a"
    headers.set("X-Item", "c")
    assert headers.get_all("X-Item") == ["c"]


def test_headers_missing_value_is_empty():
    headers = Headers({"Accept": ["text/html", "application/json"]})
    assert headers.get("Origin") == ""
    assert headers.get_all("Origin") == []
    assert len(headers) == 1
    del headers["accept"]
    assert "Accept" not in headers


def test_request_splits_full_url():
    request = Request(method="GET", path="http://api.his.com/users/1?x=1")
    assert request.path == "/users/1"
    assert request.query == "x=1"


def test_request_empty_path_becomes_root():
    assert Request(path="http://api.his.com").path == "/"


def test_recording_response_defaults_status_on_write():
    response = Response()
    response.write("dummy")
    assert response.status_code == 200
    assert response.body == b"dummy"
    assert response.content_length == 5


def test_first_write_header_wins():
    response = Response()
    response.write_header(204)
    response.write_header(500)
    assert response.status_code == 204


def test_write_error_string():
    response = Response()
    response.add_header("X-Reason", "missing")
    response.write_error_string(404, "404: Page Not Found")
    assert response.status_code == 404
    assert response.body == b"404: Page Not Found"
    assert response.header().get("x-reason") == "missing"


def test_response_delegates_to_writer():
    sink = Response()
    response = Response(sink)
    response.add_header("X-Test", "yes")
    response.write_header(201)
    response.write(b"created")
    assert sink.status_code == 201
    assert sink.body == b"created"
    assert sink.header().get("X-Test") == "yes"
    assert response.content_length == len(b"created")


def test_new_basic_request_response_takes_accept():
    request = Request(headers=Headers({"Accept": "application/json"}))
    sink = Response()
    same_request, response = new_basic_request_response(sink, request)
    assert same_request is request
    assert response.request_accept == "application/json"
    assert response.writer is sink