#!/usr/bin/env python3
"""
Normalization utilities for the restaurant import pipeline
Slug generation, price tiers, opening hours and address parsing shared by all batch jobs
"""
import re
import unicodedata
import logging
from dataclasses import dataclass
from typing import Dict, List, Any, Optional, Callable, Iterable, Union

logger = logging.getLogger(__name__)

# Pre-compiled regex patterns
RE_NON_SLUG = re.compile(r'[^a-z0-9]+')
RE_DAY_LINE = re.compile(r'^\s*([^:]+?)\s*:\s*(.+?)\s*$')
RE_TIME_RANGE = re.compile(
    r'(\d{1,2})[:.](\d{2})\s*([AaPp]\.?\s?[Mm]\.?)?'
    r'\s*[–—-]\s*'
    r'(\d{1,2})[:.](\d{2})\s*([AaPp]\.?\s?[Mm]\.?)?'
)
RE_DUTCH_POSTAL_CODE = re.compile(r'\b\d{4}\s?[A-Z]{2}\b')

PRICE_TIERS = ('€', '€€', '€€€', '€€€€')

# Places API (New) reports price levels as enum names
PRICE_LEVEL_NAMES = {
    'PRICE_LEVEL_FREE': 0,
    'PRICE_LEVEL_INEXPENSIVE': 1,
    'PRICE_LEVEL_MODERATE': 2,
    'PRICE_LEVEL_EXPENSIVE': 3,
    'PRICE_LEVEL_VERY_EXPENSIVE': 4,
}

ENGLISH_DAY_NAMES = {
    'monday': 'monday',
    'tuesday': 'tuesday',
    'wednesday': 'wednesday',
    'thursday': 'thursday',
    'friday': 'friday',
    'saturday': 'saturday',
    'sunday': 'sunday',
}

LOCALITY_TYPES = ('locality', 'postal_town')
REGION_TYPE = 'administrative_area_level_1'


@dataclass
class AreaInfo:
    """Area derived from a place's address components"""
    name: str
    region: Optional[str]
    lat: Optional[float]
    lng: Optional[float]


def strip_accents(text: str) -> str:
    text = unicodedata.normalize('NFD', text)
    return ''.join(c for c in text if unicodedata.category(c) != 'Mn')


def _fold(text: str) -> str:
    return strip_accents(text).lower().strip()


def slugify(name: str) -> str:
    """Lowercase, strip diacritics, collapse non-alphanumerics to single hyphens"""
    if not name:
        return ""
    text = strip_accents(name.lower()).lower()
    return RE_NON_SLUG.sub('-', text).strip('-')


def resolve_unique_slug(base: str, exists_fn: Callable[[str], bool]) -> str:
    """
    Return base if free, otherwise the first free base-1, base-2, ...

    A concurrent import can still claim the slug between this probe and the
    insert; the insert then fails on the unique constraint and the caller
    counts the candidate as skipped.
    """
    slug = base
    counter = 1
    while exists_fn(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def map_price_level(level: Union[int, str, None]) -> Optional[str]:
    """Map an upstream 0-4 price level to the four-tier symbolic scale"""
    if level is None:
        return None
    if isinstance(level, str):
        if level in PRICE_LEVEL_NAMES:
            level = PRICE_LEVEL_NAMES[level]
        elif level.isdigit():
            level = int(level)
        else:
            # PRICE_LEVEL_UNSPECIFIED and friends
            return None
    if level in (0, 1):
        return PRICE_TIERS[0]
    if level in (2, 3, 4):
        return PRICE_TIERS[level - 1]
    return PRICE_TIERS[1]


def _to_24h(hour: str, minute: str, meridiem: Optional[str]) -> str:
    h = int(hour)
    if meridiem:
        is_pm = meridiem.lower().startswith('p')
        h = h % 12 + (12 if is_pm else 0)
    return f"{h:02d}:{minute}"


def _parse_time_range(text: str) -> Optional[Dict[str, str]]:
    match = RE_TIME_RANGE.search(text)
    if not match:
        return None
    open_h, open_m, open_mer, close_h, close_m, close_mer = match.groups()

    # "5:00 – 10:00 PM" carries the meridiem on the closing time only
    if close_mer and not open_mer:
        close_is_pm = close_mer.lower().startswith('p')
        if int(open_h) % 12 <= int(close_h) % 12:
            open_mer = close_mer
        else:
            open_mer = 'AM' if close_is_pm else 'PM'

    return {
        'open': _to_24h(open_h, open_m, open_mer),
        'close': _to_24h(close_h, close_m, close_mer),
    }


def parse_opening_hours(weekday_text: Optional[Iterable[str]],
                        day_names: Optional[Dict[str, str]] = None,
                        closed_keywords: Iterable[str] = ('closed',)) -> Optional[Dict[str, Dict[str, str]]]:
    """
    Parse "<DayName>: <open>–<close>" lines into {day: {'open', 'close'}}

    Day names are matched case- and accent-insensitively against day_names
    (localized name -> canonical english day). Closed days and lines that do
    not carry a time range are left out: a missing day means the hours are
    not stated, never that the venue is closed.
    """
    if weekday_text is None:
        return None

    folded_days = {_fold(k): v for k, v in (day_names or ENGLISH_DAY_NAMES).items()}
    folded_closed = [_fold(k) for k in closed_keywords]

    hours = {}
    for line in weekday_text:
        if not line:
            continue
        match = RE_DAY_LINE.match(line)
        if not match:
            continue
        day_key = folded_days.get(_fold(match.group(1)))
        if not day_key:
            logger.debug(f"Unknown day name in opening hours line: {line!r}")
            continue

        time_text = match.group(2)
        if any(keyword in _fold(time_text) for keyword in folded_closed):
            continue

        time_range = _parse_time_range(time_text)
        if time_range:
            hours[day_key] = time_range

    return hours


def extract_area_info(address_components: Optional[List[Dict[str, Any]]],
                      lat: Optional[float], lng: Optional[float]) -> Optional[AreaInfo]:
    """Locality and top-level region from address components, None without a locality"""
    locality = None
    region = None
    for component in address_components or []:
        types = component.get('types', [])
        name = component.get('long_name') or component.get('longText')
        if not name:
            continue
        if locality is None and any(t in types for t in LOCALITY_TYPES):
            locality = name
        elif region is None and REGION_TYPE in types:
            region = name

    if not locality:
        return None
    return AreaInfo(name=locality, region=region, lat=lat, lng=lng)


def extract_postal_code(address_components: Optional[List[Dict[str, Any]]],
                        formatted_address: Optional[str]) -> Optional[str]:
    for component in address_components or []:
        if 'postal_code' in component.get('types', []):
            return component.get('long_name') or component.get('longText')
    if formatted_address:
        match = RE_DUTCH_POSTAL_CODE.search(formatted_address)
        if match:
            return match.group(0)
    return None
