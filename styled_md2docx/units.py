"""Unit conversion helpers for WordprocessingML measurements."""

from __future__ import annotations

TWIPS_PER_MM = 56.7
TWIPS_PER_POINT = 20
TWIPS_PER_PIXEL = 15  # 96 dpi
EMU_PER_TWIP = 635


def mm_to_twip(mm: float) -> int:
    """Convert millimetres to twips (1/20th of a point)."""
    return int(round(mm * TWIPS_PER_MM))


def twip_to_mm(twip: float) -> float:
    """Convert twips to millimetres, rounded to two decimals."""
    return round(twip / TWIPS_PER_MM, 2)


def points_to_twips(value: float) -> int:
    return int(round(value * TWIPS_PER_POINT))


def twips_to_points(value: int) -> float:
    return value / TWIPS_PER_POINT


def pixels_to_twips(value: int) -> int:
    """Convert screen pixels at 96 dpi to twips."""
    return int(value * TWIPS_PER_PIXEL)


def twips_to_emu(value: int) -> int:
    return int(value * EMU_PER_TWIP)
