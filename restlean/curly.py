"""Route and web-service matching for paths with ``{parameter}`` segments.

Services are expected to expose ``routes`` and ``path_expr.tokens``; routes
expose ``path``, ``path_parts`` and ``has_custom_verb``.
"""

import re
from dataclasses import dataclass
from typing import Any

from .custom_verb import has_custom_verb, is_match_custom_verb, remove_custom_verb


@dataclass
class CurlyRoute:
    """A candidate route with its counts of matched parameters and static parts."""

    route: Any
    param_count: int
    static_count: int


def sort_curly_routes(routes):
    """Order by most static parts, then most parameters, then path descending."""
    return sorted(
        routes,
        key=lambda each: (each.static_count, each.param_count, each.route.path),
        reverse=True,
    )


def select_routes(service, request_tokens):
    """Return the sorted CurlyRoutes of service that match the request tokens."""
    candidates = []
    for route in service.routes:
        matches, params, statics = matches_route_by_path_tokens(
            route.path_parts, request_tokens, route.has_custom_verb
        )
        if matches:
            candidates.append(CurlyRoute(route, params, statics))
    return sort_curly_routes(candidates)


def matches_route_by_path_tokens(route_tokens, request_tokens, route_has_custom_verb):
    """Return (matches, parameter count, static count) for a route against a request."""
    if len(route_tokens) < len(request_tokens):
        # only a trailing wildcard can match a longer request
        if not route_tokens or not route_tokens[-1].endswith("*}"):
            return False, 0, 0
    param_count = 0
    static_count = 0
    for position, route_token in enumerate(route_tokens):
        if position == len(request_tokens):
            return False, 0, 0
        request_token = request_tokens[position]
        if route_has_custom_verb and has_custom_verb(route_token):
            if not is_match_custom_verb(route_token, request_token):
                return False, 0, 0
            static_count += 1
            request_token = remove_custom_verb(request_token)
            route_token = remove_custom_verb(route_token)
        if route_token.startswith("{"):
            param_count += 1
            colon = route_token.find(":")
            if colon != -1:
                matches_token, matches_remainder = regular_matches_path_token(
                    route_token, colon, request_token
                )
                if not matches_token:
                    return False, 0, 0
                if matches_remainder:
                    break
        else:
            if request_token != route_token:
                return False, 0, 0
            static_count += 1
    return True, param_count, static_count


def regular_matches_path_token(route_token, colon, request_token):
    """Match ``{name:expression}`` against a token.

    Returns (matches token, matches all remaining tokens); the latter only for ``*``.
    """
    expression = route_token[colon + 1 : -1]
    if expression == "*":
        return True, True
    try:
        matched = re.search(expression, request_token) is not None
    except re.error:
        matched = False
    return matched, False


def compute_webservice_score(request_tokens, tokens):
    """Return whether the service tokens match, and a score favouring static prefixes."""
    if len(tokens) > len(request_tokens):
        return False, 0
    score = 0
    for position, (each, other) in enumerate(zip(request_tokens, tokens)):
        if not each and not other:
            score += 1
            continue
        if other.startswith("{"):
            if not each:
                return False, score
            score += 1
        else:
            if each != other:
                return False, score
            score += (len(tokens) - position) * 10
    return True, score


def detect_web_service(request_tokens, services):
    """Return the best scoring matching service, or None."""
    best = None
    best_score = -1
    for service in services:
        matches, score = compute_webservice_score(request_tokens, service.path_expr.tokens)
        if matches and score > best_score:
            best = service
            best_score = score
    return best