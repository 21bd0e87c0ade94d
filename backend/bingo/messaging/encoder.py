"""
MessagePack encoder/decoder for the websocket wire format.

Every frame carries exactly one dict. Outbound pydantic models are dumped in
JSON mode first so enums and nested models become plain msgpack types.
"""

from typing import Any

import msgpack
from pydantic import BaseModel


def encode(data: dict[str, Any] | BaseModel) -> bytes:
    """
    Encode a dict or pydantic model to MessagePack bytes.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return msgpack.packb(data)


class DecodeError(Exception):
    """Error raised when MessagePack decoding fails."""


# Size limits to prevent resource exhaustion from malicious payloads.
# A submitted card is the largest legitimate inbound frame.
MAX_BUFFER_LEN = 64 * 1024  # 64KB total payload
MAX_STR_LEN = 4 * 1024  # 4KB per string
MAX_BIN_LEN = 1024  # binary is never expected
MAX_ARRAY_LEN = 64  # a card holds 16 terms
MAX_MAP_LEN = 16  # max map entries
MAX_EXT_LEN = 0  # extension types are never expected


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a dict.

    Raises DecodeError if data is invalid, not a dict, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result
