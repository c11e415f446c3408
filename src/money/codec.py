"""
Currency Codec

Converts between what the user types into a money field and the
canonical amount we store.

Typing is cents-first, like a calculator: every keystroke re-encodes
the whole field from its digits, so typing "1", "0", "0", "0" shows
R$ 0,01 -> R$ 0,10 -> R$ 1,00 -> R$ 10,00.

DESIGN DECISION: The codec never raises. A field that cannot be parsed
decodes to zero, and a field without digits encodes to an empty string.
Forms decide separately whether an amount is required.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class CurrencyLocale:
    """Display conventions for one currency."""

    symbol: str
    decimal_separator: str
    grouping_separator: str

    def format_number(self, value: Decimal) -> str:
        """Format an absolute value with grouping and two decimals."""
        # Python formats as 1,234.56; swap separators through a placeholder
        text = f"{value:,.2f}"
        return (
            text.replace(",", "\0")
            .replace(".", self.decimal_separator)
            .replace("\0", self.grouping_separator)
        )


BRL = CurrencyLocale(symbol="R$", decimal_separator=",", grouping_separator=".")

_NON_DIGIT = re.compile(r"[^0-9]")


def to_canonical(value: Number) -> Decimal:
    """Quantize any number to two fractional digits (half-up)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def encode(raw_input: Optional[str], locale: CurrencyLocale = BRL) -> str:
    """
    Encode raw keyboard input into a display string.

    Every non-digit is dropped and the remaining digits are read as an
    integer number of cents.

        >>> encode("5")
        'R$ 0,05'
        >>> encode("R$ 1.234,567")
        'R$ 12.345,67'
        >>> encode("abc")
        ''
    """
    digits = _NON_DIGIT.sub("", raw_input or "")
    if not digits:
        return ""

    value = Decimal(int(digits)).scaleb(-2)
    return f"{locale.symbol} {locale.format_number(value)}"


def decode(display: Optional[str], locale: CurrencyLocale = BRL) -> Decimal:
    """
    Decode a display string back into a canonical amount.

    Keeps digits and the decimal separator, turns the first separator
    into a period and parses. Anything unparsable is zero.

        >>> decode("R$ 1.234,56")
        Decimal('1234.56')
        >>> decode("")
        Decimal('0.00')
    """
    keep = re.compile(f"[^0-9{re.escape(locale.decimal_separator)}]")
    cleaned = keep.sub("", display or "")
    cleaned = cleaned.replace(locale.decimal_separator, ".", 1)

    try:
        return to_canonical(cleaned)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")


def to_cents_string(value: Number) -> str:
    """Canonical amount -> digit string of cents ("12.5" -> "1250")."""
    cents = (to_canonical(value) * 100).to_integral_value(rounding=ROUND_HALF_UP)
    return str(abs(int(cents)))


def encode_amount(value: Optional[Number], locale: CurrencyLocale = BRL) -> str:
    """
    Encode a stored amount for an edit form.

    Goes through the cents string so the field behaves exactly as if
    the user had typed the amount.
    """
    if value is None:
        return ""
    return encode(to_cents_string(value), locale)


def format_currency(value: Number, locale: CurrencyLocale = BRL) -> str:
    """
    Format a signed amount for read-only display.

        >>> format_currency(Decimal("-20"))
        '-R$ 20,00'
    """
    amount = to_canonical(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{locale.symbol} {locale.format_number(abs(amount))}"
