"""PMML document parsing and shared value helpers."""

import re
import xml.etree.ElementTree as ET
from typing import Any, Optional

_DTD_PATTERN = re.compile(rb"<!\s*(DOCTYPE|ENTITY)", re.IGNORECASE)


class PMMLError(Exception):
    """PMML document cannot be decoded or uses an unsupported construct."""
    pass


def parse_document(content: bytes) -> ET.Element:
    """Parse PMML bytes into an element tree with namespaces stripped.

    Documents declaring a DTD or entities are rejected outright so untrusted
    model blobs cannot trigger entity expansion.
    """
    if not content:
        raise PMMLError("Empty PMML document")
    if isinstance(content, str):
        content = content.encode("utf-8")
    if _DTD_PATTERN.search(content):
        raise PMMLError("PMML documents with DTD or entity declarations are not allowed")
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise PMMLError(f"Malformed PMML document: {e}") from e

    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
    if root.tag != "PMML":
        raise PMMLError(f"Root element is not PMML: {root.tag}")
    return root


def parse_value(data_type: Optional[str], raw: Optional[str]) -> Any:
    """Parse a literal according to a PMML ``dataType``.

    Without a data type, integers and reals are recognized and everything
    else stays a string.
    """
    if raw is None:
        return None
    raw = raw.strip()
    try:
        if data_type in ("double", "float"):
            return float(raw)
        if data_type == "integer":
            return int(float(raw))
        if data_type == "boolean":
            if raw.lower() in ("true", "1"):
                return True
            if raw.lower() in ("false", "0"):
                return False
            raise PMMLError(f"Invalid boolean literal: {raw}")
        if data_type == "string":
            return raw
    except ValueError as e:
        raise PMMLError(f"Invalid {data_type} literal: {raw}") from e
    if data_type is not None:
        raise PMMLError(f"Unsupported dataType: {data_type}")
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def coerce_value(data_type: Optional[str], value: Any) -> Any:
    """Convert a runtime value to a PMML ``dataType``; ``None`` stays missing."""
    if value is None or data_type is None:
        return value
    if isinstance(value, str) and data_type != "string":
        return parse_value(data_type, value)
    try:
        if data_type in ("double", "float"):
            return float(value)
        if data_type == "integer":
            return int(value)
        if data_type == "boolean":
            return bool(value)
        if data_type == "string":
            return str(value)
    except (TypeError, ValueError) as e:
        raise PMMLError(f"Cannot convert {value!r} to {data_type}") from e
    raise PMMLError(f"Unsupported dataType: {data_type}")


def child(element: ET.Element, tag: str) -> Optional[ET.Element]:
    """First direct child with the given tag."""
    for item in element:
        if item.tag == tag:
            return item
    return None


def children(element: ET.Element, tag: str):
    """Direct children with the given tag, in document order."""
    return [item for item in element if item.tag == tag]
