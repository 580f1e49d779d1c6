"""Map the object's yaw to the region of the globe facing the viewer."""

from __future__ import annotations

import math
from enum import Enum


class Region(Enum):
    AFRICA_EUROPE = "Africa / Europe"
    ASIA_OCEANIA = "Asia / Oceania"
    PACIFIC = "Pacific"
    AMERICAS = "Americas"
    OPEN_OCEAN = "Open Ocean"


def yaw_degrees(yaw: float) -> float:
    """Normalize a yaw in radians to degrees in [0, 360).

    Rounded to 9 decimals so round-tripping a whole degree value through
    radians lands on the boundary it came from.
    """
    normalized = math.fmod(yaw, 2 * math.pi)
    if normalized < 0:
        normalized += 2 * math.pi
    return round(normalized * 180 / math.pi, 9)


def region_for_degrees(deg: float) -> Region:
    """Region for a heading in degrees; any real value is wrapped into [0, 360).

    Boundaries: [0, 60) and [330, 360] Africa/Europe, [60, 160) Asia/Oceania,
    [160, 250) Pacific, [250, 330) Americas. Anything else (only non-finite
    input) falls back to open ocean.
    """
    if math.isfinite(deg):
        deg = math.fmod(deg, 360.0)
        if deg < 0:
            deg += 360.0

    if 0 <= deg < 60 or 330 <= deg <= 360:
        return Region.AFRICA_EUROPE
    if 60 <= deg < 160:
        return Region.ASIA_OCEANIA
    if 160 <= deg < 250:
        return Region.PACIFIC
    if 250 <= deg < 330:
        return Region.AMERICAS
    return Region.OPEN_OCEAN


def region_for_yaw(yaw: float) -> Region:
    """Region under the cursor for a yaw in radians."""
    if not math.isfinite(yaw):
        return Region.OPEN_OCEAN
    return region_for_degrees(yaw_degrees(yaw))
