"""Support for custom verbs at the end of a path token, such as ``/resource:validate``."""

import re

_CUSTOM_VERB = re.compile(r":([A-Za-z]+)\Z")


def has_custom_verb(route_token):
    """Return True if the token ends with a ``:verb`` suffix."""
    return _CUSTOM_VERB.search(route_token) is not None


def is_match_custom_verb(route_token, path_token):
    """Return True if the path token ends with the same custom verb as the route token."""
    found = _CUSTOM_VERB.search(route_token)
    if found is None:
        return False
    verb = found.group(1)
    return re.search(":" + re.escape(verb) + r"\Z", path_token) is not None


def remove_custom_verb(text):
    """Strip a trailing ``:verb`` suffix from the text."""
    return _CUSTOM_VERB.sub("", text)