"""Normalization of AstrologyAPI chart payloads.

AstrologyAPI endpoints do not agree on field names (``planets`` vs ``bodies``,
``norm_degree`` vs ``degree``, ``is_retro`` as bool or string...). Every
normalized field is read through an ordered tuple of candidate keys; the first
key holding a usable value wins. The orders below are part of the output
contract and must not be reshuffled.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from core.errors import MalformedUpstreamResponse
from schemas.chart import CelestialBody, HouseCusp, NormalizedChart

BODY_LIST_KEYS = ("planets", "bodies", "planet_positions", "planetPositions", "objects")
HOUSE_LIST_KEYS = ("houses", "house_cusps", "houseCusps", "cusps")
ASPECT_LIST_KEYS = ("aspects",)
CHART_URL_KEYS = ("chart_url", "chartUrl", "svg_url")

BODY_FIELD_RULES: dict[str, tuple[str, ...]] = {
    "name": ("name", "planet", "planet_name", "body"),
    "sign": ("sign", "sign_name", "zodiac_sign", "zodiac"),
    "house": ("house", "house_id", "house_number"),
    "degree": ("norm_degree", "normDegree", "degree", "full_degree", "longitude"),
    "is_retrograde": ("is_retro", "isRetro", "is_retrograde", "retrograde"),
}

HOUSE_FIELD_RULES: dict[str, tuple[str, ...]] = {
    "house": ("house", "house_id", "house_number", "number"),
    "sign": ("sign", "sign_name", "zodiac_sign"),
    "start_degree": ("start_degree", "degree", "cusp", "start"),
    "end_degree": ("end_degree", "end"),
}

# Checked top to bottom with a case-insensitive substring match, so the more
# specific labels ("south node", "black moon lilith") sit above the generic ones.
CANONICAL_ALIASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("South Node", ("ketu", "south")),
    ("North Node", ("rahu", "north", "node")),
    ("Lilith", ("lilith", "black moon")),
    ("Chiron", ("chiron",)),
    ("Part of Fortune", ("fortune",)),
    ("Ascendant", ("ascendant",)),
    ("Midheaven", ("midheaven",)),
    ("Sun", ("sun",)),
    ("Moon", ("moon",)),
    ("Mercury", ("mercury",)),
    ("Venus", ("venus",)),
    ("Mars", ("mars",)),
    ("Jupiter", ("jupiter",)),
    ("Saturn", ("saturn",)),
    ("Uranus", ("uranus",)),
    ("Neptune", ("neptune",)),
    ("Pluto", ("pluto",)),
)

_TRUE_STRINGS = {"true", "yes", "1", "r", "retro", "retrograde"}


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def pick(source: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the value of the first key in ``keys`` that holds something usable."""
    for key in keys:
        value = source.get(key)
        if not _is_missing(value):
            return value
    return None


def pick_list(source: Mapping[str, Any], keys: Iterable[str]) -> list:
    for key in keys:
        value = source.get(key)
        if isinstance(value, list):
            return value
    return []


def canonical_name(raw_name: Any) -> Optional[str]:
    if _is_missing(raw_name):
        return None
    name = str(raw_name).strip()
    lowered = name.lower()
    for label, aliases in CANONICAL_ALIASES:
        if any(alias in lowered for alias in aliases):
            return label
    return name


def _as_text(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


def _as_float(value: Any) -> Optional[float]:
    if _is_missing(value) or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_house_number(value: Any) -> Optional[int]:
    number = _as_float(value)
    if number is None or not number.is_integer():
        return None
    number = int(number)
    return number if 1 <= number <= 12 else None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _read(source: Mapping[str, Any], rules: Mapping[str, tuple[str, ...]], field: str,
          coerce: Callable[[Any], Any]) -> Any:
    return coerce(pick(source, rules[field]))


def normalize_body(raw: Any) -> Optional[CelestialBody]:
    if not isinstance(raw, Mapping):
        return None
    name = canonical_name(pick(raw, BODY_FIELD_RULES["name"]))
    if name is None:
        return None
    return CelestialBody(
        name=name,
        sign=_read(raw, BODY_FIELD_RULES, "sign", _as_text),
        house=_read(raw, BODY_FIELD_RULES, "house", _as_house_number),
        degree=_read(raw, BODY_FIELD_RULES, "degree", _as_float),
        is_retrograde=_read(raw, BODY_FIELD_RULES, "is_retrograde", _as_bool),
    )


def normalize_house(raw: Any) -> Optional[HouseCusp]:
    if not isinstance(raw, Mapping):
        return None
    number = _read(raw, HOUSE_FIELD_RULES, "house", _as_house_number)
    if number is None:
        return None
    return HouseCusp(
        house=number,
        sign=_read(raw, HOUSE_FIELD_RULES, "sign", _as_text),
        start_degree=_read(raw, HOUSE_FIELD_RULES, "start_degree", _as_float),
        end_degree=_read(raw, HOUSE_FIELD_RULES, "end_degree", _as_float),
    )


def _fill_house_ends(houses: list[HouseCusp]) -> list[HouseCusp]:
    starts = {}
    for cusp in houses:
        if cusp.start_degree is not None:
            starts.setdefault(cusp.house, cusp.start_degree)

    filled = []
    for cusp in houses:
        next_start = starts.get(cusp.house % 12 + 1)
        if cusp.end_degree is None and next_start is not None:
            cusp = cusp.model_copy(update={"end_degree": next_start})
        filled.append(cusp)
    return filled


def normalize(raw: Any) -> NormalizedChart:
    """Reshape an upstream chart payload into a ``NormalizedChart``."""
    if not isinstance(raw, Mapping):
        raise MalformedUpstreamResponse(upstream_body=raw)

    bodies: dict[str, CelestialBody] = {}
    for item in pick_list(raw, BODY_LIST_KEYS):
        body = normalize_body(item)
        if body is not None and body.name not in bodies:
            bodies[body.name] = body

    houses = [h for h in (normalize_house(item) for item in pick_list(raw, HOUSE_LIST_KEYS)) if h is not None]

    return NormalizedChart(
        bodies=list(bodies.values()),
        houses=_fill_house_ends(houses),
        aspects=list(pick_list(raw, ASPECT_LIST_KEYS)),
        chart_url=_as_text(pick(raw, CHART_URL_KEYS)),
    )
