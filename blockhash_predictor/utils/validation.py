import re
from typing import Union

from eth_utils import is_address, to_checksum_address

from blockhash_predictor.errors import ValidationError

BYTES32_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
ZERO_HASH = "0x" + "00" * 32
UINT256_MAX = 2**256 - 1


def is_bytes32_hex(value) -> bool:
    return isinstance(value, str) and BYTES32_PATTERN.match(value) is not None


def validate_bytes32(value) -> str:
    """Returns the lowercase form of a 0x-prefixed 32-byte hex string."""
    if not is_bytes32_hex(value):
        raise ValidationError(f"Invalid bytes32 {value!r}. Must be 0x + 64 hex chars.")
    return value.lower()


def validate_prediction_id(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid prediction id {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            raise ValidationError(f"Invalid prediction id {value!r}")
        value = int(value)
    if isinstance(value, int) and 0 <= value <= UINT256_MAX:
        return value
    raise ValidationError(f"Invalid prediction id {value!r}")


def validate_address(value) -> str:
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(f"Invalid address {value!r}")
    return to_checksum_address(value)


def short_hex(value: str, head: int = 6, tail: int = 4) -> str:
    if not value or len(value) <= head + tail:
        return value or "-"
    return f"{value[:head]}...{value[-tail:]}"
