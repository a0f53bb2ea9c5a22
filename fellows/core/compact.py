"""
Compact tagged strings as stored by the identity pallet.

The first byte is a tag:

- ``0``: no value
- ``1..=33``: inline raw bytes, ``tag - 1`` of them follow
- ``34..=37``: a 32 byte hash (BlakeTwo256, Sha256, Keccak256, ShaThree256)

Only the inline form can be turned back into text.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fellows.exceptions import DecodeError


TAG_NONE = 0
MAX_RAW_LEN = 32
HASH_LEN = 32

HASH_TAGS: Dict[str, int] = {
    "BlakeTwo256": 34,
    "Sha256": 35,
    "Keccak256": 36,
    "ShaThree256": 37,
}

ABSENT = bytes([TAG_NONE])


def decode(data: bytes) -> Optional[str]:
    """Return the inline UTF-8 string carried by `data`, or None.

    Never raises: absent values, hashes, unknown tags, short payloads and
    invalid UTF-8 all map to None.
    """
    if not data:
        return None
    tag = data[0]
    if tag < 1 or tag > MAX_RAW_LEN + 1:
        return None
    raw = bytes(data[1:tag])
    if len(raw) != tag - 1:
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def encode_raw(text: Optional[str]) -> bytes:
    """Inline form of `text`; None becomes the absent tag."""
    if text is None:
        return ABSENT
    raw = text.encode("utf-8")
    if len(raw) > MAX_RAW_LEN:
        raise DecodeError(f"inline data is limited to {MAX_RAW_LEN} bytes, got {len(raw)}")
    return bytes([len(raw) + 1]) + raw


def encoded_length(data: bytes, offset: int = 0) -> int:
    """Size in bytes of the tagged item starting at `offset`, tag included."""
    if offset >= len(data):
        raise DecodeError("missing data tag")
    tag = data[offset]
    if tag <= MAX_RAW_LEN + 1:
        size = 1 + max(0, tag - 1)
    elif tag in HASH_TAGS.values():
        size = 1 + HASH_LEN
    else:
        raise DecodeError(f"unknown data tag {tag}")
    if offset + size > len(data):
        raise DecodeError("truncated data item")
    return size


def _payload_bytes(payload: Any) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, (list, tuple)):
        if len(payload) == 1 and isinstance(payload[0], (list, tuple, bytes, bytearray)):
            return _payload_bytes(payload[0])
        try:
            return bytes(payload)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"bad byte list: {e}") from e
    if isinstance(payload, str):
        if payload.startswith("0x") and len(payload) % 2 == 0:
            try:
                return bytes.fromhex(payload[2:])
            except ValueError:
                pass
        return payload.encode("utf-8")
    raise DecodeError(f"unsupported data payload {type(payload).__name__}")


def data_from_chain(value: Any) -> bytes:
    """
    Convert a decoded identity `Data` enum into the tagged byte form.

    Decoders render the enum in a few shapes: ``"None"``, ``{"None": None}``,
    ``{"Raw5": "abcde"}``, ``{"Raw5": "0x6162636465"}``, ``{"Raw5": (97, ...)}``
    or ``{"Sha256": "0x..."}``. Already tagged bytes pass through.
    """
    if value is None:
        return ABSENT
    if isinstance(value, (bytes, bytearray)):
        return bytes(value) if value else ABSENT
    if isinstance(value, str):
        if value == "None":
            return ABSENT
        raise DecodeError(f"unexpected data variant {value!r}")
    if not isinstance(value, dict) or len(value) != 1:
        raise DecodeError(f"unexpected data shape {value!r}")

    variant, payload = next(iter(value.items()))
    if variant == "None":
        return ABSENT
    if variant in HASH_TAGS:
        digest = _payload_bytes(payload)
        if len(digest) != HASH_LEN:
            raise DecodeError(f"{variant} digest must be {HASH_LEN} bytes")
        return bytes([HASH_TAGS[variant]]) + digest
    if variant.startswith("Raw"):
        raw = _payload_bytes(payload)
        if len(raw) > MAX_RAW_LEN:
            raise DecodeError(f"{variant} payload too long ({len(raw)} bytes)")
        return bytes([len(raw) + 1]) + raw
    raise DecodeError(f"unknown data variant {variant!r}")
