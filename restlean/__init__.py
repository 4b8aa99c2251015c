"""Building blocks for REST-style web services: dispatching, routing, filters, CORS, compression and entities."""

__version__ = "0.1.0"