"""
Base64 alphabet table and symbol lookups
"""

from typing import Union

ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/='

PAD_SYMBOL = '='
PAD_POSITION = 64
NOT_FOUND = -1

Symbol = Union[int, str, bytes, bytearray]


def _build_reverse_table():
    table = [NOT_FOUND] * 256
    for position, char in enumerate(ALPHABET):
        table[ord(char)] = position
    return tuple(table)


# Indexed by byte value
REVERSE_TABLE = _build_reverse_table()

NOISE_BYTES = bytes(code for code in range(256) if REVERSE_TABLE[code] == NOT_FOUND)


def position_of(c: Symbol) -> int:
    """Return the alphabet position of c (0-63 data, 64 padding) or NOT_FOUND.

    c may be a byte value, a 1-byte bytes object or a 1-character string.
    """
    if isinstance(c, int):
        code = c
    elif isinstance(c, (str, bytes, bytearray)) and len(c) == 1:
        code = ord(c)
    else:
        return NOT_FOUND

    if 0 <= code < 256:
        return REVERSE_TABLE[code]
    return NOT_FOUND


def is_member(c: Symbol) -> bool:
    """Check if c belongs to the 65-symbol alphabet"""
    return position_of(c) != NOT_FOUND


def strip_noise(data: bytes) -> bytes:
    """Drop every byte that is not an alphabet symbol ('=' is kept)"""
    return bytes(data).translate(None, NOISE_BYTES)
