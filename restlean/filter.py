"""Filter chains run before a route function, and vendor extension storage."""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class FilterChain:
    """Passes a request/response pair through filters, then to the target function."""

    filters: list = field(default_factory=list)
    index: int = 0
    target: Optional[Callable[[Any, Any], None]] = None
    parameter_docs: list = field(default_factory=list)
    operation: str = ""

    def process_filter(self, request, response):
        """Call the next filter, or the target when all filters have run."""
        if self.index < len(self.filters):
            self.index += 1
            self.filters[self.index - 1](request, response, self)
        else:
            self.target(request, response)


def no_browser_cache_filter(request, response, chain):
    """Set headers that stop browsers and proxies from caching, then continue."""
    headers = response.header()
    headers.set("Cache-Control", "no-cache, no-store, must-revalidate")
    headers.set("Pragma", "no-cache")
    headers.set("Expires", "0")
    chain.process_filter(request, response)


@dataclass
class ExtensionProperties:
    """Holds vendor extensions describing extra functionality."""

    extensions: Optional[dict] = None

    def add_extension(self, key, value):
        """Add or update a key/value pair."""
        if self.extensions is None:
            self.extensions = {key: value}
        else:
            self.extensions[key] = value