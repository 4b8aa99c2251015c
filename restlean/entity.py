"""Reading and writing request and response entities as JSON or XML, by MIME type."""

import abc
import dataclasses
import json
import threading
import xml.etree.ElementTree as ET
from xml.sax.saxutils import escape

from .constants import HEADER_CONTENT_TYPE, MIME_JSON, MIME_XML

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_XML_TEXT_ESCAPES = {
    '"': "&#34;",
    "'": "&#39;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


class EntityReaderWriter(abc.ABC):
    """Reads and writes values in one encoding."""

    @abc.abstractmethod
    def read(self, request):
        """Return the value decoded from the request body."""

    @abc.abstractmethod
    def write(self, response, status, value):
        """Write status and the encoded value on the response."""


def _json_default(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"json: unsupported type: {type(value).__name__}")


def _escape_json(text):
    for raw, escaped in _JSON_ESCAPES.items():
        text = text.replace(raw, escaped)
    return text


class EntityAccessorJSON(EntityReaderWriter):
    """JSON encoding; content_type is set on the response when writing."""

    def __init__(self, content_type=MIME_JSON):
        self.content_type = content_type

    def read(self, request):
        body = request.body
        if isinstance(body, (bytes, bytearray)):
            body = bytes(body).decode("utf-8")
        return json.loads(body)

    def write(self, response, status, value):
        if value is None:
            response.write_header(status)
            return
        if response.pretty_print:
            text = json.dumps(value, indent=1, ensure_ascii=False, default=_json_default)
        else:
            text = (
                json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)
                + "\n"
            )
        output = _escape_json(text).encode("utf-8")
        response.header().set(HEADER_CONTENT_TYPE, self.content_type)
        response.write_header(status)
        response.write(output)


def _scalar_text(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_element(value, tag=None):
    if isinstance(value, ET.Element):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        element = ET.Element(tag or type(value).__name__)
        for each in dataclasses.fields(value):
            _append_field(element, each.name, getattr(value, each.name))
        return element
    raise TypeError(f"xml: unsupported type: {type(value).__name__}")


def _append_field(parent, name, value):
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _append_field(parent, name, item)
        return
    if isinstance(value, ET.Element) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        child = _to_element(value, name)
        if child.tag != name and not isinstance(value, ET.Element):
            child.tag = name
        parent.append(child)
        return
    child = ET.SubElement(parent, name)
    child.text = _scalar_text(value)


def _escape_xml(text):
    return escape(text, _XML_TEXT_ESCAPES)


def _start_tag(element):
    attributes = "".join(
        f' {name}="{_escape_xml(str(value))}"' for name, value in element.attrib.items()
    )
    return f"<{element.tag}{attributes}>"


def _render_xml(element, prefix, indent, depth, lines):
    pad = prefix + indent * depth
    text = _escape_xml(element.text or "")
    if len(element) == 0:
        lines.append(f"{pad}{_start_tag(element)}{text}</{element.tag}>")
        return
    lines.append(f"{pad}{_start_tag(element)}{text}")
    for child in element:
        _render_xml(child, prefix, indent, depth + 1, lines)
    lines.append(f"{pad}</{element.tag}>")


def _marshal_xml(value, prefix="", indent=""):
    lines = []
    _render_xml(_to_element(value), prefix, indent, 0, lines)
    separator = "\n" if (prefix or indent) else ""
    return separator.join(lines)


class EntityAccessorXML(EntityReaderWriter):
    """XML encoding of elements and dataclasses; reading yields an Element."""

    def __init__(self, content_type=MIME_XML):
        self.content_type = content_type

    def read(self, request):
        return ET.fromstring(request.body)

    def write(self, response, status, value):
        if value is None:
            response.write_header(status)
            return
        if response.pretty_print:
            output = _marshal_xml(value, " ", " ")
            response.header().set(HEADER_CONTENT_TYPE, self.content_type)
            response.write_header(status)
            response.write(XML_HEADER.encode("utf-8"))
            response.write(output.encode("utf-8"))
            return
        output = _marshal_xml(value)
        response.header().set(HEADER_CONTENT_TYPE, self.content_type)
        response.write_header(status)
        response.write(output.encode("utf-8"))


_registry = {}
_registry_lock = threading.RLock()


def register_entity_accessor(mime, accessor):
    """Add or replace the accessor for content of this MIME type."""
    with _registry_lock:
        _registry[mime] = accessor


def accessor_at(mime):
    """Return the accessor for mime, or one whose MIME type it contains, or None."""
    with _registry_lock:
        found = _registry.get(mime)
        if found is not None:
            return found
        for key, accessor in _registry.items():
            if key in mime:
                return accessor
    return None


register_entity_accessor(MIME_JSON, EntityAccessorJSON(MIME_JSON))
register_entity_accessor(MIME_XML, EntityAccessorXML(MIME_XML))