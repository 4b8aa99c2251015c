"""MIME types, header names and content encodings used throughout the package."""

MIME_XML = "application/xml"
MIME_JSON = "application/json"
MIME_OCTET = "application/octet-stream"

HEADER_ALLOW = "Allow"
HEADER_ACCEPT = "Accept"
HEADER_ORIGIN = "Origin"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_LAST_MODIFIED = "Last-Modified"
HEADER_ACCEPT_ENCODING = "Accept-Encoding"
HEADER_CONTENT_ENCODING = "Content-Encoding"
HEADER_ACCESS_CONTROL_EXPOSE_HEADERS = "Access-Control-Expose-Headers"
HEADER_ACCESS_CONTROL_REQUEST_METHOD = "Access-Control-Request-Method"
HEADER_ACCESS_CONTROL_REQUEST_HEADERS = "Access-Control-Request-Headers"
HEADER_ACCESS_CONTROL_ALLOW_METHODS = "Access-Control-Allow-Methods"
HEADER_ACCESS_CONTROL_ALLOW_ORIGIN = "Access-Control-Allow-Origin"
HEADER_ACCESS_CONTROL_ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"
HEADER_ACCESS_CONTROL_ALLOW_HEADERS = "Access-Control-Allow-Headers"
HEADER_ACCESS_CONTROL_MAX_AGE = "Access-Control-Max-Age"

ENCODING_GZIP = "gzip"
ENCODING_DEFLATE = "deflate"