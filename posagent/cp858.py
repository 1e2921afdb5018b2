"""Transcoding text to the CP858 code page used by ESC/POS printers."""

from __future__ import annotations

import logging
import threading

_log = logging.getLogger(__name__)

# Code points follow the CP850/CP858 tables; CP858 differs from CP850
# only at 0xD5, which holds the euro sign.
_CP858: dict[str, bytes] = {
    # Lowercase French accented letters
    "à": b"\x85",
    "â": b"\x83",
    "ä": b"\x84",
    "ç": b"\x87",
    "é": b"\x82",
    "è": b"\x8a",
    "ê": b"\x88",
    "ë": b"\x89",
    "î": b"\x8c",
    "ï": b"\x8b",
    "ô": b"\x93",
    "ö": b"\x94",
    "ù": b"\x97",
    "û": b"\x96",
    "ü": b"\x81",
    "ÿ": b"\x98",
    # Uppercase French accented letters
    "À": b"\xb7",
    "Â": b"\xb6",
    "Ç": b"\x80",
    "É": b"\x90",
    "È": b"\xd4",
    "Ê": b"\xd2",
    "Î": b"\xd7",
    "Ô": b"\xe2",
    "Ù": b"\xeb",
    "Û": b"\xea",
    # Symbols present in CP858
    "€": b"\xd5",
    "°": b"\xf8",
    "«": b"\xae",
    "»": b"\xaf",
    "£": b"\x9c",
    # Transliterations for characters CP858 lacks
    "\u00a0": b" ",
    "\u2026": b"...",
    "\u0153": b"oe",
    "\u0152": b"OE",
}

_CONTROL_PASSTHROUGH = frozenset("\n\r\t")

_warned: set[str] = set()
_warned_lock = threading.Lock()


def to_cp858(text: str) -> bytes:
    """Encode ``text`` as CP858.

    Printable ASCII plus tab, LF and CR pass through unchanged; mapped
    characters become their CP858 byte or an ASCII transliteration.
    Anything else becomes ``?`` and is logged once per character.
    """
    out = bytearray()
    for char in text:
        if " " <= char <= "~" or char in _CONTROL_PASSTHROUGH:
            out.append(ord(char))
            continue
        mapped = _CP858.get(char)
        if mapped is not None:
            out += mapped
            continue
        _warn_unknown(char)
        out += b"?"
    return bytes(out)


def _warn_unknown(char: str) -> None:
    with _warned_lock:
        if char in _warned:
            return
        _warned.add(char)
    _log.warning(
        "escpos: character not representable in CP858, replaced with '?': %r (U+%04X)",
        char,
        ord(char),
    )