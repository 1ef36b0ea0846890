"""
uplink_normalizer.py - Resolve uplink inputs into a canonical message

Network servers hand the decoder the node payload in different shapes: a hex
string, raw bytes, an object wrapping either, nothing at all (the payload
lives in the metadata), or a whole gateway frame serialized as JSON and
tunnelled through the payload channel. normalize_input() resolves all of
them, in a fixed order, into a CanonicalMessage.

Usage:
    from uplink_normalizer import normalize_input

    message = normalize_input("01020001140400000bb8", {"EUI": "AABBCCDD"})
    message.payload   # b'\\x01\\x02\\x00\\x01\\x14\\x04\\x00\\x00\\x0b\\xb8'
    message.metadata  # {'EUI': 'AABBCCDD'}
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, List, Mapping, Optional, Tuple

from uplink_errors import (
    EmbeddedJsonParseFailure, MalformedHex, PayloadTooShort,
    UnsupportedPayloadFormat,
)
from uplink_header import PAYLOAD_SIZE


logger = logging.getLogger(__name__)

HEX_PATTERN = re.compile(r'[0-9a-fA-F]*')

# Keys probed, in order, when the payload has to be dug out of an object
PAYLOAD_KEYS = ('data', 'payload')


class PayloadKind(Enum):
    HEX_STRING = 'hex_string'
    BYTE_ARRAY = 'byte_array'
    WRAPPED_OBJECT = 'wrapped_object'
    ABSENT = 'absent'


@dataclass(frozen=True)
class RawPayload:
    """Payload input tagged with its shape."""
    kind: PayloadKind
    value: Any = None


@dataclass(frozen=True)
class CanonicalMessage:
    """Payload bytes plus the metadata that belongs to them."""
    payload: bytes
    metadata: Mapping[str, Any]
    source: str = ''
    warnings: Tuple[str, ...] = field(default_factory=tuple)


# =============================================================================
# Hex / text helpers
# =============================================================================

def hex_to_bytes(hex_str: str) -> bytes:
    """Convert pairs of hex digits to bytes."""
    if len(hex_str) % 2 != 0:
        raise MalformedHex(f"Hex string has odd length {len(hex_str)}")
    if not HEX_PATTERN.fullmatch(hex_str):
        raise MalformedHex(f"Invalid hex digits in payload: {hex_str!r}")
    return bytes.fromhex(hex_str)


def bytes_to_hex(data: bytes, upper: bool = False) -> str:
    """Inverse of hex_to_bytes."""
    text = bytes(data).hex()
    return text.upper() if upper else text


def decode_to_string(payload: bytes) -> str:
    """Interpret every byte as one character (latin-1)."""
    return bytes(payload).decode('latin-1')


def decode_to_json(payload: bytes) -> Any:
    """Parse a payload that carries JSON text."""
    return json.loads(decode_to_string(payload))


# =============================================================================
# Shape classification
# =============================================================================

def _is_byte_list(value: Any) -> bool:
    return (isinstance(value, (list, tuple))
            and all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255
                    for b in value))


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if _is_byte_list(value):
        return bytes(value)
    raise UnsupportedPayloadFormat(
        "Byte array must contain integers in range 0..255"
    )


def classify_payload(payload: Any) -> RawPayload:
    """Tag a raw payload input with its shape."""
    if payload is None:
        return RawPayload(PayloadKind.ABSENT)
    if isinstance(payload, (bytes, bytearray)):
        return RawPayload(PayloadKind.BYTE_ARRAY, bytes(payload))
    if isinstance(payload, (list, tuple)):
        return RawPayload(PayloadKind.BYTE_ARRAY, _as_bytes(payload))
    if isinstance(payload, str):
        return RawPayload(PayloadKind.HEX_STRING, payload)
    if isinstance(payload, Mapping):
        return RawPayload(PayloadKind.WRAPPED_OBJECT, payload)
    raise UnsupportedPayloadFormat(
        f"Unsupported payload format: {type(payload).__name__}"
    )


# =============================================================================
# Resolution
# =============================================================================

def _parse_embedded_frame(payload: bytes) -> Optional[Dict[str, Any]]:
    """
    Detect a gateway frame serialized as JSON inside the payload.

    Returns the frame if it is a mioty 'gw' frame with a hex 'data' field,
    None if the payload is not JSON-shaped or is some other JSON object.
    Raises EmbeddedJsonParseFailure if it looks like JSON but does not parse.
    """
    if len(payload) < 2 or payload[:1] != b'{' or payload[-1:] != b'}':
        return None
    if not payload.isascii():
        return None
    try:
        frame = decode_to_json(payload)
    except (ValueError, RecursionError) as e:
        raise EmbeddedJsonParseFailure(f"Embedded JSON frame did not parse: {e}", e)

    if (isinstance(frame, dict)
            and isinstance(frame.get('data'), str)
            and frame.get('protocol') == 'mioty'
            and frame.get('cmd') == 'gw'):
        return frame
    return None


def _find_payload_field(*sources: Optional[Mapping[str, Any]]) -> Optional[Tuple[bytes, str]]:
    for source in sources:
        if not source:
            continue
        for key in PAYLOAD_KEYS:
            value = source.get(key)
            if isinstance(value, str):
                return hex_to_bytes(value), key
            if isinstance(value, (list, tuple, bytes, bytearray)):
                return _as_bytes(value), key
    return None


def _resolve(raw: RawPayload, metadata: Mapping[str, Any],
             warnings: List[str]) -> Tuple[bytes, Mapping[str, Any], str]:
    if raw.kind == PayloadKind.BYTE_ARRAY:
        try:
            frame = _parse_embedded_frame(raw.value)
        except EmbeddedJsonParseFailure as e:
            logger.debug("Treating payload as raw bytes: %s", e)
            warnings.append(str(e))
            frame = None
        if frame is not None:
            return hex_to_bytes(frame['data']), frame, 'embedded_json'
        return raw.value, metadata, 'bytes'

    if raw.kind == PayloadKind.HEX_STRING:
        return hex_to_bytes(raw.value), metadata, 'hex'

    wrapper = raw.value if raw.kind == PayloadKind.WRAPPED_OBJECT else None

    if wrapper is not None and isinstance(wrapper.get('data'), str):
        merged = dict(metadata)
        merged.update(wrapper)
        return hex_to_bytes(wrapper['data']), merged, 'object'

    if isinstance(metadata.get('data'), str):
        return hex_to_bytes(metadata['data']), metadata, 'metadata'

    found = _find_payload_field(wrapper, metadata)
    if found is not None:
        payload, key = found
        if wrapper is not None:
            merged = dict(metadata)
            merged.update(wrapper)
            metadata = merged
        return payload, metadata, f"field:{key}"

    raise UnsupportedPayloadFormat("Unsupported payload format")


def normalize_input(payload: Any, metadata: Optional[Mapping[str, Any]] = None,
                    min_length: int = PAYLOAD_SIZE) -> CanonicalMessage:
    """
    Resolve (payload, metadata) into a CanonicalMessage.

    Resolution order, first match wins:
        1. bytes carrying a JSON mioty 'gw' frame -> frame['data'], frame as metadata
        2. bytes -> used as is
        3. hex string -> decoded
        4. object with string 'data' -> decoded, object is the metadata
        5. metadata with string 'data' -> decoded
        6. 'data' or 'payload' field (hex string or byte array) on payload
           object or metadata
    """
    if metadata is None:
        metadata = {}
    elif not isinstance(metadata, Mapping):
        raise UnsupportedPayloadFormat(
            f"Metadata must be an object, got {type(metadata).__name__}"
        )

    warnings: List[str] = []
    raw = classify_payload(payload)
    data, resolved_meta, source = _resolve(raw, metadata, warnings)

    if len(data) < min_length:
        raise PayloadTooShort(len(data), min_length)

    logger.debug("Resolved %d byte payload from %s", len(data), source)
    return CanonicalMessage(
        payload=bytes(data),
        metadata=MappingProxyType(dict(resolved_meta)),
        source=source,
        warnings=tuple(warnings),
    )
