"""Wire shape and validation for TSPL thermal label documents.

A :class:`Label` is a resolved template: printer state (size, gap,
direction, density, speed, code page) plus drawable elements. Element
coordinates are in printer dots; at 203 dpi one millimetre is 8 dots.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Mapping

DOTS_PER_MM = 8

MIN_WIDTH_MM = 20
MAX_WIDTH_MM = 100
MIN_HEIGHT_MM = 20
MAX_HEIGHT_MM = 150

_VALID_ROTATIONS = frozenset({0, 90, 180, 270})
_VALID_QR_ECC = frozenset({"L", "M", "Q", "H"})


class ElementType(str, enum.Enum):
    """Discriminator of the drawable element kinds."""

    TEXT = "text"
    BARCODE = "barcode"
    QRCODE = "qrcode"


class BarcodeSymbology(str, enum.Enum):
    """Barcode symbologies the label renderer supports."""

    CODE128 = "CODE128"
    EAN13 = "EAN13"


class InvalidLabelError(ValueError):
    """A label broke the per-element contract or the dimension bounds."""

    def __init__(self, detail: str):
        super().__init__(f"label: invalid: {detail}")
        self.detail = detail


def _quote(value: str) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def _get_int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key} must be an integer")
    return value


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key} must be a string")
    return value


def _get_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key} must be a boolean")
    return value


def _get_object(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key} must be an object")
    return value


def _is_numeric_len(text: str, low: int, high: int) -> bool:
    if not low <= len(text.encode("utf-8")) <= high:
        return False
    return all("0" <= ch <= "9" for ch in text)


@dataclass
class SizeMM:
    """Physical label dimensions in millimetres."""

    width: int = 0
    height: int = 0


@dataclass
class GapMM:
    """Inter-label gap and offset in millimetres."""

    gap: int = 0
    offset: int = 0


@dataclass
class Element:
    """One drawable item; ``type`` selects which fields are meaningful.

    Text uses ``font``, ``x_scale`` and ``y_scale``; barcodes use
    ``symbology``, ``height``, ``narrow``, ``wide`` and ``readable``;
    QR codes use ``ecc``, ``cell`` and ``mode``.
    """

    type: str = ""
    x: int = 0
    y: int = 0
    rotation: int = 0
    value: str = ""

    font: str = ""
    x_scale: int = 0
    y_scale: int = 0

    symbology: str = ""
    height: int = 0
    narrow: int = 0
    wide: int = 0
    readable: bool = False

    ecc: str = ""
    cell: int = 0
    mode: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Element":
        """Build from decoded JSON; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("element must be an object")
        return cls(
            type=_get_str(data, "type"),
            x=_get_int(data, "x"),
            y=_get_int(data, "y"),
            rotation=_get_int(data, "rotation"),
            value=_get_str(data, "value"),
            font=_get_str(data, "font"),
            x_scale=_get_int(data, "x_scale"),
            y_scale=_get_int(data, "y_scale"),
            symbology=_get_str(data, "symbology"),
            height=_get_int(data, "height"),
            narrow=_get_int(data, "narrow"),
            wide=_get_int(data, "wide"),
            readable=_get_bool(data, "readable"),
            ecc=_get_str(data, "ecc"),
            cell=_get_int(data, "cell"),
            mode=_get_str(data, "mode"),
        )

    def validate(self, index: int, max_x: int, max_y: int) -> None:
        """Raise :class:`InvalidLabelError` if this element is unusable."""
        prefix = f"elements[{index}]"

        if self.x < 0:
            raise InvalidLabelError(f"{prefix}.x {self.x} must be >= 0")
        if self.y < 0:
            raise InvalidLabelError(f"{prefix}.y {self.y} must be >= 0")
        if self.x > max_x:
            raise InvalidLabelError(f"{prefix}.x {self.x} exceeds bounds {max_x} dots")
        if self.y > max_y:
            raise InvalidLabelError(f"{prefix}.y {self.y} exceeds bounds {max_y} dots")
        if self.rotation not in _VALID_ROTATIONS:
            raise InvalidLabelError(
                f"{prefix}.rotation {self.rotation} invalid (want 0, 90, 180, 270)"
            )
        if not self.value.strip():
            raise InvalidLabelError(f"{prefix}.value is empty")

        if self.type == ElementType.TEXT:
            self._validate_text(prefix)
        elif self.type == ElementType.BARCODE:
            self._validate_barcode(prefix)
        elif self.type == ElementType.QRCODE:
            self._validate_qrcode(prefix)
        else:
            raise InvalidLabelError(
                f"{prefix}.type {_quote(self.type)} invalid (want text, barcode, or qrcode)"
            )

    def _validate_text(self, prefix: str) -> None:
        if self.font == "":
            raise InvalidLabelError(f"{prefix}.font required for text element")
        if not 1 <= self.x_scale <= 8:
            raise InvalidLabelError(f"{prefix}.x_scale {self.x_scale} out of range [1, 8]")
        if not 1 <= self.y_scale <= 8:
            raise InvalidLabelError(f"{prefix}.y_scale {self.y_scale} out of range [1, 8]")

    def _validate_barcode(self, prefix: str) -> None:
        if self.symbology not in (BarcodeSymbology.CODE128, BarcodeSymbology.EAN13):
            raise InvalidLabelError(
                f"{prefix}.symbology {_quote(self.symbology)} invalid (want CODE128 or EAN13)"
            )
        if self.height < 1:
            raise InvalidLabelError(f"{prefix}.height {self.height} must be >= 1")
        if self.narrow < 1:
            raise InvalidLabelError(f"{prefix}.narrow {self.narrow} must be >= 1")
        if self.wide < 1:
            raise InvalidLabelError(f"{prefix}.wide {self.wide} must be >= 1")
        if self.symbology == BarcodeSymbology.EAN13 and not _is_numeric_len(self.value, 12, 13):
            raise InvalidLabelError(
                f"{prefix}.value {_quote(self.value)} invalid for EAN13 (want 12 or 13 digits)"
            )

    def _validate_qrcode(self, prefix: str) -> None:
        if self.ecc not in _VALID_QR_ECC:
            raise InvalidLabelError(
                f"{prefix}.ecc {_quote(self.ecc)} invalid (want L, M, Q, or H)"
            )
        if not 1 <= self.cell <= 10:
            raise InvalidLabelError(f"{prefix}.cell {self.cell} out of range [1, 10]")
        if self.mode == "":
            raise InvalidLabelError(
                f'{prefix}.mode required for qrcode element (typ. "A")'
            )


@dataclass
class Label:
    """A resolved label document: printer state plus drawable elements."""

    size: SizeMM = field(default_factory=SizeMM)
    gap: GapMM = field(default_factory=GapMM)
    direction: int = 0
    density: int = 0
    speed: int = 0
    codepage: int = 0
    elements: list[Element] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Label":
        """Build from decoded JSON; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("label must be an object")
        size = _get_object(data, "size")
        gap = _get_object(data, "gap")
        raw_elements = data.get("elements")
        if raw_elements is None:
            raw_elements = []
        elif not isinstance(raw_elements, list):
            raise ValueError("field elements must be an array")
        return cls(
            size=SizeMM(width=_get_int(size, "width"), height=_get_int(size, "height")),
            gap=GapMM(gap=_get_int(gap, "gap"), offset=_get_int(gap, "offset")),
            direction=_get_int(data, "direction"),
            density=_get_int(data, "density"),
            speed=_get_int(data, "speed"),
            codepage=_get_int(data, "codepage"),
            elements=[Element.from_dict(item) for item in raw_elements],
        )

    def validate(self) -> None:
        """Raise :class:`InvalidLabelError` on the first broken invariant."""
        if not MIN_WIDTH_MM <= self.size.width <= MAX_WIDTH_MM:
            raise InvalidLabelError(
                f"size.width {self.size.width} out of range "
                f"[{MIN_WIDTH_MM}, {MAX_WIDTH_MM}]mm"
            )
        if not MIN_HEIGHT_MM <= self.size.height <= MAX_HEIGHT_MM:
            raise InvalidLabelError(
                f"size.height {self.size.height} out of range "
                f"[{MIN_HEIGHT_MM}, {MAX_HEIGHT_MM}]mm"
            )
        if self.gap.gap < 0:
            raise InvalidLabelError(f"gap.gap {self.gap.gap} must be >= 0")
        if self.gap.offset < 0:
            raise InvalidLabelError(f"gap.offset {self.gap.offset} must be >= 0")
        if self.direction not in (0, 1):
            raise InvalidLabelError(f"direction {self.direction} invalid (want 0 or 1)")
        if not 0 <= self.density <= 15:
            raise InvalidLabelError(f"density {self.density} out of range [0, 15]")
        if not 1 <= self.speed <= 12:
            raise InvalidLabelError(f"speed {self.speed} out of range [1, 12]")
        if self.codepage < 0:
            raise InvalidLabelError(f"codepage {self.codepage} must be >= 0")

        if not self.elements:
            raise InvalidLabelError("elements is empty (no drawable items)")

        max_x = self.size.width * DOTS_PER_MM
        max_y = self.size.height * DOTS_PER_MM
        for index, element in enumerate(self.elements):
            element.validate(index, max_x, max_y)