"""Canonical identity keys for geographic pins.

A pin is identified by its external place id when one is available and by its
coordinates rounded to five decimal places otherwise.  Rounding is applied to
the decimal representation of each coordinate (half-up) so that values such as
``-122.431295`` land on ``-122.43130`` regardless of binary float artefacts.
Keys must stay stable: re-selecting the same real-world place always yields
the same key.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

__all__ = [
    "COORDINATE_PRECISION",
    "PLACE_ID_PREFIX",
    "PinLike",
    "coordinate_key",
    "normalize_coordinate",
    "place_key",
    "same_place",
]

COORDINATE_PRECISION = 5
PLACE_ID_PREFIX = "g_"

_QUANTUM = Decimal(1).scaleb(-COORDINATE_PRECISION)


class PinLike(Protocol):
    lat: float
    lng: float


def _round_coordinate(value: float) -> Decimal:
    rounded = Decimal(repr(float(value))).quantize(_QUANTUM, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        # Collapse ``-0.00000`` so both hemispheres share one key.
        return _QUANTUM * 0
    return rounded


def normalize_coordinate(value: float) -> float:
    """Return ``value`` rounded to the canonical precision."""

    return float(_round_coordinate(value))


def coordinate_key(lat: float, lng: float) -> str:
    """Return the ``"{lat:.5f}_{lng:.5f}"`` key for a coordinate pair."""

    return f"{_round_coordinate(lat):f}_{_round_coordinate(lng):f}"


def _place_id(pin: PinLike) -> str | None:
    value = getattr(pin, "place_id", None)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def place_key(pin: PinLike) -> str:
    """Return the identity key for ``pin``.

    ``"g_<placeId>"`` when the pin carries an external id, the rounded
    coordinate key otherwise.
    """

    place_id = _place_id(pin)
    if place_id is not None:
        return f"{PLACE_ID_PREFIX}{place_id}"
    return coordinate_key(pin.lat, pin.lng)


def same_place(first: PinLike, second: PinLike) -> bool:
    """Return ``True`` when both pins denote the same real-world place.

    External ids take precedence: two pins carrying ids match only when the
    ids are equal.  Otherwise the rounded coordinates are compared.
    """

    first_id = _place_id(first)
    second_id = _place_id(second)
    if first_id is not None and second_id is not None:
        return first_id == second_id
    return coordinate_key(first.lat, first.lng) == coordinate_key(second.lat, second.lng)
