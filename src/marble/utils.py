from __future__ import annotations

import base64
import json
import re
from typing import Any, Union

NEAR_NOMINATION_EXP = 24
NEAR_NOMINATION = 10**NEAR_NOMINATION_EXP

TGAS = 10**12
DEFAULT_FUNCTION_CALL_GAS = 30 * TGAS
MAX_GAS = 300 * TGAS
MAX_U128 = 2**128 - 1

_AMOUNT_RE = re.compile(r"^\d+(\.\d+)?$")
_GAS_RE = re.compile(r"^(\d+)\s*(tgas|t|ggas|g)?$", re.IGNORECASE)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> bytes:
    return base64.b64decode(value)


def json_bytes(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def parse_near_amount(amount: str) -> str:
    """Convert a human readable NEAR amount (``"1.5"``) to yoctoNEAR."""
    cleaned = amount.replace(",", "").strip()
    if not _AMOUNT_RE.match(cleaned):
        raise ValueError(f"Invalid NEAR amount: {amount!r}")
    whole, _, fraction = cleaned.partition(".")
    if len(fraction) > NEAR_NOMINATION_EXP:
        raise ValueError(
            f"Cannot parse {amount!r}: more than {NEAR_NOMINATION_EXP} decimal places"
        )
    yocto = int(whole + fraction.ljust(NEAR_NOMINATION_EXP, "0"))
    return str(yocto)


def format_near_amount(yocto: Union[int, str], frac_digits: int = 5) -> str:
    """Format a yoctoNEAR balance as NEAR, rounded half-up to ``frac_digits``."""
    value = int(yocto)
    if value < 0:
        raise ValueError("Amount must be non-negative")
    if frac_digits < NEAR_NOMINATION_EXP:
        unit = 10 ** (NEAR_NOMINATION_EXP - frac_digits)
        value = (value + unit // 2) // unit * unit
    whole, fraction = divmod(value, NEAR_NOMINATION)
    fraction_str = str(fraction).rjust(NEAR_NOMINATION_EXP, "0")[:frac_digits].rstrip("0")
    whole_str = f"{whole:,}"
    return f"{whole_str}.{fraction_str}" if fraction_str else whole_str


def parse_gas(value: Union[int, str]) -> int:
    """Parse a gas amount: raw units (``300000000000000``) or ``"300Tgas"``."""
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid gas amount: {value!r}")
    match = _GAS_RE.match(value.replace("_", "").strip())
    if not match:
        raise ValueError(f"Invalid gas amount: {value!r}")
    number, unit = match.groups()
    multiplier = 1
    if unit:
        multiplier = TGAS if unit.lower().startswith("t") else 10**9
    return int(number) * multiplier


def parse_deposit(value: Union[int, str]) -> int:
    """Parse a yoctoNEAR deposit given as int or digit string."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid deposit: {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid deposit: {value!r}")
    cleaned = value.replace("_", "").strip()
    if not cleaned.isdigit():
        raise ValueError(f"Invalid deposit (expected yoctoNEAR integer): {value!r}")
    return int(cleaned)
