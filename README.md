# restlean

Building blocks for REST-style web services: a container that dispatches
requests to routes, curly-bracket path matching, filter chains, CORS handling,
gzip/deflate response compression, JSON/XML entity encoding, and `h1:`
checksums of directories and module files.

There are no third-party dependencies.

## Modules

- `restlean.messages`: `Headers` is a case-insensitive, multi-valued header
  collection with `get`, `get_all`, `set` and `add`. `Request` is a dataclass
  with `method`, `path`, `headers`, `body`, `query`, `path_parameters` and
  `attributes`. If `path` is given as a full URL, it is split into path and
  query. `Response` records status, headers and body itself. If it is given a
  writer, it passes them on to that writer instead. Its methods are `header()`,
  `add_header()`, `write_header()`, `write()` and `write_error_string()`.
- `restlean.container`: `Container` holds web services and container filters,
  and a `ServeMux` that maps path patterns to handlers. Its methods:
  - `add`, `remove` and `registered_web_services` manage the web services.
    Adding a second service with the same root path raises `ValueError`.
  - `dispatch` and `serve_http` process requests. `serve_http` goes through the
    `ServeMux`.
  - `handle` and `handle_with_filter` register plain handlers.
  - `filter` adds container filters.
  - `enable_content_encoding`, `do_not_recover`, `recover_handler`,
    `service_error_handler` and `set_router` change settings.
  - `compute_allowed_methods` returns the methods of the routes that match a
    request's path.

  The default router first picks the web service that matches best, then the
  matching routes, then the first candidate whose HTTP method equals the
  request's. It answers 404 when nothing matches the path and 405 when no route
  has the request's method. `fixed_prefix_path` returns the part of a path
  template before its first `{`.
- `restlean.curly`: path-token matching for templates.
  - Supported forms are `{name}`, `{name:regexp}`, tail wildcards `{name:*}`
    and custom verbs such as `{id}:init`.
  - `matches_route_by_path_tokens` and `regular_matches_path_token` match route
    tokens against request tokens.
  - `select_routes` and `sort_curly_routes` find and order candidate routes.
    Routes with more static parts come first, then routes with more
    parameters.
  - `compute_webservice_score` and `detect_web_service` choose between web
    services.
- `restlean.custom_verb`: `has_custom_verb`, `is_match_custom_verb` and
  `remove_custom_verb`.
- `restlean.filter`: `FilterChain.process_filter` runs the filters in order and
  then the target function. `no_browser_cache_filter` sets the
  `Cache-Control`, `Pragma` and `Expires` headers. `ExtensionProperties`
  stores vendor extensions through `add_extension`.
- `restlean.cors`: `CrossOriginResourceSharing` handles preflight and actual
  cross-origin requests. Use its bound `filter` method as a filter. Its
  settings are:
  - `expose_headers`
  - `allowed_headers`: may contain `"*"`.
  - `allowed_domains`: may contain `".*"`. When it is empty, every origin is
    allowed.
  - `allowed_domain_func`
  - `allowed_methods`: when it is empty, the methods come from
    `container.compute_allowed_methods`.
  - `max_age`
  - `cookies_allowed`
  - `container`
- `restlean.compress`: `CompressingResponseWriter` wraps a writer and gzips or
  deflates everything written to it. `wants_compressed_response` reads
  `Accept-Encoding` and returns `(compress, encoding)`. When both encodings
  are accepted, the one listed first wins. An existing `Content-Encoding` on
  the response means no compression.
- `restlean.compressors`: `GzipWriter`, `ZlibWriter` and `GzipReader` can be
  reused. Two `CompressorProvider`s hand them out:
  - `SyncPoolCompressors` keeps unbounded pools and is the default.
  - `BoundedCachedCompressors` keeps a prefilled cache of fixed size.

  `current_compressor_provider` and `set_compressor_provider` read and replace
  the provider in use.
- `restlean.entity`: `EntityAccessorJSON` and `EntityAccessorXML` read request
  bodies and write responses. The XML writer handles dataclasses and
  `xml.etree.ElementTree.Element`s. Accessors are registered per MIME type with
  `register_entity_accessor`. `accessor_at` looks one up, falling back to a
  registered type contained in the given MIME string.
- `restlean.checksum`: `hash_dir`, `hash_files`, `dir_files`, `hash_mod_file`
  and `base64_encode`. The results are `DirHash` and `ModHash`, whose
  `checksum` field holds the `h1:` form.

## Examples

Running a filter chain into a recording response:

```python
from restlean.filter import FilterChain, no_browser_cache_filter
from restlean.messages import Request, Response

request = Request(method="GET", path="/hello")
response = Response()
chain = FilterChain(
    filters=[no_browser_cache_filter],
    target=lambda req, resp: resp.write("hello"),
)
chain.process_filter(request, response)

assert response.body == b"hello"
assert response.header().get("Cache-Control") == "no-cache, no-store, must-revalidate"
```

Compressing a response:

```python
import gzip

from restlean.compress import CompressingResponseWriter, wants_compressed_response
from restlean.messages import Headers, Response

request_headers = Headers({"Accept-Encoding": "gzip, deflate"})
sink = Response()
wanted, encoding = wants_compressed_response(request_headers, sink.header())
writer = CompressingResponseWriter(sink, encoding)
writer.write(b"Hello World")
writer.close()

assert sink.header().get("Content-Encoding") == "gzip"
assert gzip.decompress(sink.body) == b"Hello World"
```

## What the package does not do

- **No web service or route definition classes.** `Container.add` and the
  router accept any objects that provide the attributes they use:
  - A web service needs `root_path`, a `path(root)` method,
    `path_expr.tokens`, `path_expr.matcher` and `routes`. It may also have
    `filters`.
  - A route needs `method`, `path`, `path_parts`, `has_custom_verb`,
    `function` and `path_expr.matcher`. It may also have `filters`,
    `produces` and `content_encoding_enabled`.
- **No content negotiation.** The default router selects routes by path and
  method only. It does not look at `Accept` or `Content-Type`.
- **No network server.** Nothing listens on a socket. You pass requests to
  `Container.serve_http` or `Container.dispatch` together with a writer that
  has `header()`, `write_header()` and `write()`, such as a `Response`.

## Running the tests

```
pip install .[test]
pytest
```