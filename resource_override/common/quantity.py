"""Exact resource quantities with Kubernetes suffix formats."""

from __future__ import annotations

import re
from decimal import ROUND_CEILING, Decimal, localcontext
from functools import total_ordering
from typing import Optional, Union

BINARY_SI = "BinarySI"
DECIMAL_SI = "DecimalSI"
DECIMAL_EXPONENT = "DecimalExponent"

_BINARY_SUFFIXES = {
    "Ki": 1024,
    "Mi": 1024 ** 2,
    "Gi": 1024 ** 3,
    "Ti": 1024 ** 4,
    "Pi": 1024 ** 5,
    "Ei": 1024 ** 6,
}
_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_EXPONENT_TO_SUFFIX = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}

_QUANTITY_PATTERN = re.compile(
    r"^(?P<number>[+-]?(?:\d+\.?\d*|\.\d+))"
    r"(?:(?P<binary>Ki|Mi|Gi|Ti|Pi|Ei)|(?P<exponent>[eE][+-]?\d+)|(?P<decimal>[numkMGTPE]?))$"
)

_NANO = Decimal("1e-9")


class QuantityError(ValueError):
    """Raised when text cannot be parsed as a resource quantity."""


@total_ordering
class Quantity:
    """An immutable amount of a resource plus the suffix family it is shown in.

    Magnitude is kept as an exact ``Decimal`` in base units (bytes, cores).
    Parsed quantities remember their text so that an unchanged value
    serializes back exactly as it was written.
    """

    __slots__ = ("_amount", "_format", "_text")

    def __init__(self, amount: Union[Decimal, int], fmt: str = DECIMAL_SI, text: Optional[str] = None) -> None:
        if fmt not in (BINARY_SI, DECIMAL_SI, DECIMAL_EXPONENT):
            raise QuantityError(f"unknown quantity format: {fmt}")
        object.__setattr__(self, "_amount", Decimal(amount))
        object.__setattr__(self, "_format", fmt)
        object.__setattr__(self, "_text", text)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Quantity is immutable")

    @classmethod
    def parse(cls, text: Union[str, int, float, "Quantity"]) -> "Quantity":
        if isinstance(text, Quantity):
            return text
        if isinstance(text, bool) or not isinstance(text, (str, int, float)):
            raise QuantityError(f"cannot parse quantity from {text!r}")
        raw = str(text).strip()
        match = _QUANTITY_PATTERN.match(raw)
        if not match:
            raise QuantityError(f"quantities must match the regular expression {_QUANTITY_PATTERN.pattern!r}: {raw!r}")
        number = Decimal(match.group("number"))
        if match.group("binary"):
            return cls(number * _BINARY_SUFFIXES[match.group("binary")], BINARY_SI, raw)
        if match.group("exponent"):
            exponent = int(match.group("exponent")[1:])
            return cls(number.scaleb(exponent), DECIMAL_EXPONENT, raw)
        return cls(number.scaleb(_DECIMAL_SUFFIXES[match.group("decimal") or ""]), DECIMAL_SI, raw)

    @classmethod
    def from_value(cls, value: int, fmt: str = DECIMAL_SI) -> "Quantity":
        return cls(Decimal(int(value)), fmt)

    @classmethod
    def from_milli(cls, milli: int, fmt: str = DECIMAL_SI) -> "Quantity":
        return cls(Decimal(int(milli)).scaleb(-3), fmt)

    @property
    def format(self) -> str:
        return self._format

    @property
    def amount(self) -> Decimal:
        return self._amount

    def value(self) -> int:
        """Whole base units, rounded up."""
        return int(self._amount.to_integral_value(rounding=ROUND_CEILING))

    def milli_value(self) -> int:
        """Milli-units, rounded up."""
        return int(self._amount.scaleb(3).to_integral_value(rounding=ROUND_CEILING))

    def cmp(self, other: "Quantity") -> int:
        if self._amount < other._amount:
            return -1
        if self._amount > other._amount:
            return 1
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._amount == other._amount

    def __lt__(self, other: "Quantity") -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self._amount < other._amount

    def __hash__(self) -> int:
        return hash(self._amount)

    def __repr__(self) -> str:
        return f"Quantity({str(self)!r}, {self._format})"

    def __str__(self) -> str:
        if self._text is not None:
            return self._text
        return self.canonical()

    def canonical(self) -> str:
        """Render the magnitude in the shortest exact form for this format."""
        amount = self._amount
        if amount == 0:
            return "0"
        if self._format == BINARY_SI and amount == amount.to_integral_value() and abs(amount) >= 1024:
            return _format_binary(int(amount))
        return _format_decimal(amount, self._format == DECIMAL_EXPONENT)


def _format_binary(value: int) -> str:
    for suffix in ("Ei", "Pi", "Ti", "Gi", "Mi", "Ki"):
        multiplier = _BINARY_SUFFIXES[suffix]
        if value % multiplier == 0:
            return f"{value // multiplier}{suffix}"
    return str(value)


def _format_decimal(amount: Decimal, exponent_form: bool) -> str:
    with localcontext() as ctx:
        ctx.prec = 60
        if amount % _NANO != 0:
            amount = (amount / _NANO).to_integral_value(rounding=ROUND_CEILING) * _NANO
        for exponent in range(18, -12, -3):
            mantissa = amount.scaleb(-exponent)
            if mantissa == mantissa.to_integral_value():
                digits = str(int(mantissa))
                if exponent_form:
                    return digits if exponent == 0 else f"{digits}e{exponent}"
                return f"{digits}{_EXPONENT_TO_SUFFIX[exponent]}"
    raise QuantityError(f"cannot format quantity {amount}")


__all__ = [
    "BINARY_SI",
    "DECIMAL_SI",
    "DECIMAL_EXPONENT",
    "Quantity",
    "QuantityError",
]
