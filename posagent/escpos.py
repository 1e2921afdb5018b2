"""Builders for raw ESC/POS command byte sequences.

Pure functions and an accumulating :class:`Builder`; no printer I/O.
"""

from __future__ import annotations

import enum

from posagent.cp858 import to_cp858

CP858 = 19
"""ESC/POS code page index for CP858 (Latin-1 plus euro)."""

_DOUBLE_SIZE_ON = 0x11
_DOUBLE_HEIGHT_ON = 0x01


class Alignment(enum.IntEnum):
    """Justification for the ESC a n command."""

    LEFT = 0
    CENTER = 1
    RIGHT = 2


def init() -> bytes:
    """ESC @ — initialise the printer."""
    return b"\x1b\x40"


def codepage(n: int) -> bytes:
    """ESC t n — select the character code page."""
    return bytes((0x1B, 0x74, n))


def bold(on: bool) -> bytes:
    """ESC E n — emphasised printing on or off."""
    return bytes((0x1B, 0x45, 1 if on else 0))


def double_size(on: bool) -> bytes:
    """GS ! n — double width and height, or normal size."""
    return bytes((0x1D, 0x21, _DOUBLE_SIZE_ON if on else 0))


def double_height(on: bool) -> bytes:
    """GS ! n — double height with normal width, or normal size."""
    return bytes((0x1D, 0x21, _DOUBLE_HEIGHT_ON if on else 0))


def align(alignment: Alignment) -> bytes:
    """ESC a n — justification."""
    return bytes((0x1B, 0x61, int(Alignment(alignment))))


def cut_full() -> bytes:
    """GS V 0 — full paper cut."""
    return b"\x1d\x56\x00"


def cut_partial() -> bytes:
    """GS V 1 — partial paper cut."""
    return b"\x1d\x56\x01"


def drawer_kick() -> bytes:
    """ESC p 0 50 250 — pulse the cash drawer pin."""
    return b"\x1b\x70\x00\x32\xfa"


class Builder:
    """Accumulates ESC/POS bytes through chainable methods.

    ``bytes(builder)`` returns a copy of everything appended so far.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def write(self, data: bytes) -> "Builder":
        """Append raw bytes."""
        if data:
            self._buf += data
        return self

    def text(self, text: str) -> "Builder":
        """Append ``text`` encoded as UTF-8."""
        return self.write(text.encode("utf-8"))

    def text_cp858(self, text: str) -> "Builder":
        """Append ``text`` transcoded to CP858."""
        return self.write(to_cp858(text))

    def init(self) -> "Builder":
        return self.write(init())

    def codepage(self, n: int) -> "Builder":
        return self.write(codepage(n))

    def bold(self, on: bool) -> "Builder":
        return self.write(bold(on))

    def double_size(self, on: bool) -> "Builder":
        return self.write(double_size(on))

    def double_height(self, on: bool) -> "Builder":
        return self.write(double_height(on))

    def align(self, alignment: Alignment) -> "Builder":
        return self.write(align(alignment))

    def cut_full(self) -> "Builder":
        return self.write(cut_full())

    def cut_partial(self) -> "Builder":
        return self.write(cut_partial())

    def drawer_kick(self) -> "Builder":
        return self.write(drawer_kick())