"""Constructor argument encoding for contract creation payloads."""

import re
from typing import Any, Dict, List, Sequence

from ..errors import SubmissionError

_INT_TYPE = re.compile(r"^(u?)int(\d*)$")
_FIXED_BYTES_TYPE = re.compile(r"^bytes(\d+)$")
_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def _encode_int(abi_type: str, value: Any, unsigned: bool, bits: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SubmissionError(
            code="BAD_CONSTRUCTOR_ARGS", message=f"{abi_type} expects an integer, got {value!r}"
        )
    low, high = (0, 2**bits) if unsigned else (-(2 ** (bits - 1)), 2 ** (bits - 1))
    if not low <= value < high:
        raise SubmissionError(
            code="BAD_CONSTRUCTOR_ARGS", message=f"{value} does not fit in {abi_type}"
        )
    return format(value % 2**256, "064x")


def encode_word(abi_type: str, value: Any) -> str:
    """Encode one static ABI value as a 32-byte hex word (no 0x prefix).

    Raises:
        SubmissionError: If the value does not fit the type or the type is
            dynamic
    """
    if abi_type == "address":
        if not isinstance(value, str) or not _ADDRESS.match(value):
            raise SubmissionError(
                code="BAD_CONSTRUCTOR_ARGS", message=f"Invalid address {value!r}"
            )
        return _strip_0x(value).lower().rjust(64, "0")

    if abi_type == "bool":
        if not isinstance(value, bool):
            raise SubmissionError(
                code="BAD_CONSTRUCTOR_ARGS", message=f"bool expects True/False, got {value!r}"
            )
        return format(int(value), "064x")

    match = _INT_TYPE.match(abi_type)
    if match:
        bits = int(match.group(2) or 256)
        if bits % 8 or not 8 <= bits <= 256:
            raise SubmissionError(
                code="UNSUPPORTED_ARGUMENT_TYPE", message=f"Invalid integer type {abi_type}"
            )
        return _encode_int(abi_type, value, match.group(1) == "u", bits)

    match = _FIXED_BYTES_TYPE.match(abi_type)
    if match:
        size = int(match.group(1))
        raw = _strip_0x(value) if isinstance(value, str) else ""
        if not 1 <= size <= 32 or len(raw) != size * 2:
            raise SubmissionError(
                code="BAD_CONSTRUCTOR_ARGS",
                message=f"{abi_type} expects {size} hex-encoded bytes, got {value!r}",
            )
        return raw.lower().ljust(64, "0")

    raise SubmissionError(
        code="UNSUPPORTED_ARGUMENT_TYPE",
        message=f"Constructor parameter type {abi_type} is not supported",
    )


def encode_constructor_args(inputs: List[Dict[str, Any]], args: Sequence[Any]) -> str:
    """Encode ``args`` against a constructor's ABI inputs."""
    if len(inputs) != len(args):
        raise SubmissionError(
            code="BAD_CONSTRUCTOR_ARGS",
            message=f"Constructor takes {len(inputs)} argument(s), got {len(args)}",
        )
    return "".join(encode_word(param["type"], value) for param, value in zip(inputs, args))


def creation_payload(bytecode: str, inputs: List[Dict[str, Any]], args: Sequence[Any]) -> str:
    return "0x" + _strip_0x(bytecode) + encode_constructor_args(inputs, args)
