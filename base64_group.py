"""
Decode a single group of four base64 symbols
"""

from collections.abc import Sequence as SequenceABC
from typing import NamedTuple, Optional, Sequence

from base64_alphabet import NOT_FOUND, PAD_POSITION, Symbol, position_of

GROUP_SIZE = 4
MAX_GROUP_BYTES = 3


class MalformedReason:
    """Reasons reported for groups that cannot be decoded"""
    INVALID_CHARACTER = 'InvalidCharacter'
    INVALID_PADDING = 'InvalidPaddingPlacement'
    INCOMPLETE_GROUP = 'IncompleteTrailingGroup'


class GroupResult(NamedTuple):
    """Outcome of decoding one group: 1-3 bytes, or an error with no data"""
    data: bytes = b''
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def malformed(reason: str) -> GroupResult:
    return GroupResult(b'', reason)


def decode_group(chars: Sequence[Symbol]) -> GroupResult:
    """Decode exactly four alphabet symbols into up to three bytes.

    Padding may only fill the last position, or the last two. Anything
    else (padding in position 0 or 1, data after padding, a symbol outside
    the alphabet, anything but a sequence of exactly four symbols) makes the
    whole group malformed and nothing is emitted for it.
    """
    if not isinstance(chars, SequenceABC) or len(chars) != GROUP_SIZE:
        return malformed(MalformedReason.INCOMPLETE_GROUP)

    positions = [position_of(c) for c in chars]

    if PAD_POSITION in positions[:2]:
        return malformed(MalformedReason.INVALID_PADDING)

    value = 0
    outlen = MAX_GROUP_BYTES
    padded = False

    for position in positions:
        if position == NOT_FOUND:
            return malformed(MalformedReason.INVALID_CHARACTER)

        if position == PAD_POSITION:
            padded = True
            outlen -= 1
            if outlen < 1:
                return malformed(MalformedReason.INVALID_PADDING)
            position = 0
        elif padded:
            # data symbol after padding
            return malformed(MalformedReason.INVALID_PADDING)

        value = (value << 6) | position

    chunk = bytes(((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF))
    return GroupResult(chunk[:outlen])
