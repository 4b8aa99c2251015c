"""A container filter implementing Cross-Origin Resource Sharing (CORS)."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .constants import (
    HEADER_ACCESS_CONTROL_ALLOW_CREDENTIALS,
    HEADER_ACCESS_CONTROL_ALLOW_HEADERS,
    HEADER_ACCESS_CONTROL_ALLOW_METHODS,
    HEADER_ACCESS_CONTROL_ALLOW_ORIGIN,
    HEADER_ACCESS_CONTROL_EXPOSE_HEADERS,
    HEADER_ACCESS_CONTROL_MAX_AGE,
    HEADER_ACCESS_CONTROL_REQUEST_HEADERS,
    HEADER_ACCESS_CONTROL_REQUEST_METHOD,
    HEADER_ORIGIN,
)

_log = logging.getLogger(__name__)

_WILDCARD_DOMAIN = ".*"
_WILDCARD_HEADER = "*"


@dataclass
class CrossOriginResourceSharing:
    """Settings for CORS handling; use the bound ``filter`` method as a filter function.

    ``allowed_domains`` may contain ".*" to allow every origin; when it is empty all
    origins are allowed unless ``allowed_domain_func`` decides otherwise.
    ``allowed_headers`` may contain "*". When ``allowed_methods`` is empty, preflight
    requests use the methods that ``container.compute_allowed_methods`` reports.
    """

    expose_headers: list = field(default_factory=list)
    allowed_headers: list = field(default_factory=list)
    allowed_domains: list = field(default_factory=list)
    allowed_domain_func: Optional[Callable[[str], bool]] = None
    allowed_methods: list = field(default_factory=list)
    max_age: int = 0
    cookies_allowed: bool = False
    container: Any = None

    def filter(self, request, response, chain):
        """Handle the CORS flow, passing on to the chain except for preflight requests."""
        origin = request.headers.get(HEADER_ORIGIN)
        if not origin:
            _log.debug("no Http header Origin set")
            chain.process_filter(request, response)
            return
        if not self.is_origin_allowed(origin):
            _log.debug(
                "HTTP Origin:%s is not part of %s, nor accepted by the domain function",
                origin,
                self.allowed_domains,
            )
            chain.process_filter(request, response)
            return
        if request.method != "OPTIONS":
            self._set_options_headers(request, response)
            chain.process_filter(request, response)
            return
        if request.headers.get(HEADER_ACCESS_CONTROL_REQUEST_METHOD):
            self._do_preflight_request(request, response)
        else:
            self._set_options_headers(request, response)
            chain.process_filter(request, response)

    def _allowed_methods_for(self, request):
        if self.allowed_methods:
            return list(self.allowed_methods)
        if self.container is None:
            return []
        return list(self.container.compute_allowed_methods(request))

    def _do_preflight_request(self, request, response):
        methods = self._allowed_methods_for(request)
        requested_method = request.headers.get(HEADER_ACCESS_CONTROL_REQUEST_METHOD)
        if requested_method not in methods:
            _log.debug(
                "Http header %s:%s is not in %s",
                HEADER_ACCESS_CONTROL_REQUEST_METHOD,
                requested_method,
                methods,
            )
            return
        requested_headers = request.headers.get(HEADER_ACCESS_CONTROL_REQUEST_HEADERS)
        if requested_headers:
            for each in requested_headers.split(","):
                if not self._is_valid_request_header(each.strip(" ")):
                    _log.debug(
                        "Http header %s:%s is not in %s",
                        HEADER_ACCESS_CONTROL_REQUEST_HEADERS,
                        requested_headers,
                        self.allowed_headers,
                    )
                    return
        response.add_header(HEADER_ACCESS_CONTROL_ALLOW_METHODS, ",".join(methods))
        response.add_header(HEADER_ACCESS_CONTROL_ALLOW_HEADERS, requested_headers)
        self._set_options_headers(request, response)

    def _set_options_headers(self, request, response):
        if self.expose_headers:
            response.add_header(HEADER_ACCESS_CONTROL_EXPOSE_HEADERS, ",".join(self.expose_headers))
        origin = request.headers.get(HEADER_ORIGIN)
        if self.is_origin_allowed(origin):
            response.add_header(HEADER_ACCESS_CONTROL_ALLOW_ORIGIN, origin)
        if self.cookies_allowed:
            response.add_header(HEADER_ACCESS_CONTROL_ALLOW_CREDENTIALS, "true")
        if self.max_age > 0:
            response.add_header(HEADER_ACCESS_CONTROL_MAX_AGE, str(self.max_age))

    def is_origin_allowed(self, origin):
        """Return True if requests from origin may be served."""
        if not origin:
            return False
        lower_origin = origin.lower()
        if not self.allowed_domains:
            if self.allowed_domain_func is not None:
                return bool(self.allowed_domain_func(lower_origin))
            return True
        for domain in self.allowed_domains:
            if domain == _WILDCARD_DOMAIN or domain.lower() == lower_origin:
                return True
        if self.allowed_domain_func is not None:
            return bool(self.allowed_domain_func(origin))
        return False

    def _is_valid_request_header(self, header):
        wanted = header.lower()
        return any(
            each.lower() == wanted or each == _WILDCARD_HEADER for each in self.allowed_headers
        )