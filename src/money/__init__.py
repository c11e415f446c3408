"""Money handling package."""

from src.money.codec import (
    BRL,
    CENT,
    CurrencyLocale,
    decode,
    encode,
    encode_amount,
    format_currency,
    to_canonical,
    to_cents_string,
)

__all__ = [
    "BRL",
    "CENT",
    "CurrencyLocale",
    "decode",
    "encode",
    "encode_amount",
    "format_currency",
    "to_canonical",
    "to_cents_string",
]
