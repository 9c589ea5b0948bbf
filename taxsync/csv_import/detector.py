"""Identify which platform produced a CSV export from its headers."""

import logging
from enum import Enum
from typing import Iterable

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    UBER = "uber"
    LYFT = "lyft"
    GENERIC = "generic"


UBER_MARKERS = ('trip or order uuid', 'driver payment', 'begin trip time')
UBER_ALT_MARKERS = ('gross fare', 'uber service')
LYFT_MARKERS = ('ride id', 'ride type', 'ride earnings')


def normalize_header(header: str) -> str:
    return str(header).strip().lower()


def detect_platform(headers: Iterable[str]) -> Platform:
    """
    Classify a CSV by its header names.

    Uber markers are checked before Lyft; anything else is GENERIC.
    """
    normalized = {normalize_header(h) for h in headers}

    if any(marker in normalized for marker in UBER_MARKERS):
        platform = Platform.UBER
    elif any(marker in normalized for marker in UBER_ALT_MARKERS):
        platform = Platform.UBER
    elif any(marker in normalized for marker in LYFT_MARKERS):
        platform = Platform.LYFT
    elif 'driver earnings' in normalized and 'ride distance' in normalized:
        platform = Platform.LYFT
    else:
        platform = Platform.GENERIC

    logger.info(f"Detected platform: {platform.value}")
    return platform
