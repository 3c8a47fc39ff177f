import logging
import math
from typing import Optional, Tuple

from django.db import transaction

from ..models import Location

logger = logging.getLogger("weather")

# Both coordinate deltas must be strictly below this to count as the same place (~1.1 km)
COORDINATE_TOLERANCE = 0.01


def is_same_place(location: Location, latitude: float, longitude: float) -> bool:
    return (
        abs(location.latitude - latitude) < COORDINATE_TOLERANCE
        and abs(location.longitude - longitude) < COORDINATE_TOLERANCE
    )


def find_near(latitude: float, longitude: float, queryset=None) -> Optional[Location]:
    """
    Return the stored location matching (latitude, longitude) within tolerance,
    or None. When several match, the nearest wins and ties go to the smallest id.
    """
    if queryset is None:
        queryset = Location.objects.all()

    # Prefilter window is wider than the tolerance; the strict comparison decides
    window = COORDINATE_TOLERANCE * 2
    candidates = queryset.filter(
        latitude__gte=latitude - window,
        latitude__lte=latitude + window,
        longitude__gte=longitude - window,
        longitude__lte=longitude + window,
    )

    matches = [loc for loc in candidates if is_same_place(loc, latitude, longitude)]
    if not matches:
        return None

    return min(
        matches,
        key=lambda loc: (
            math.hypot(loc.latitude - latitude, loc.longitude - longitude),
            loc.id,
        ),
    )


def resolve_or_create(
    latitude: float,
    longitude: float,
    name: str,
    country_code: str = "",
    owner=None,
    queryset=None,
) -> Tuple[Location, bool]:
    """
    Look up a location near the coordinates, creating a non-favorite one on a miss.
    Returns (location, created) in the manner of get_or_create.
    """
    with transaction.atomic():
        location = find_near(latitude, longitude, queryset=queryset)
        if location is not None:
            return location, False

        location = Location.objects.create(
            user=owner,
            name=name,
            country_code=country_code or "",
            latitude=latitude,
            longitude=longitude,
            is_favorite=False,
        )

    logger.info(
        "Location created",
        extra={
            'event': 'location_created',
            'lat': latitude,
            'lon': longitude,
            'location_id': location.id,
            'user': getattr(owner, 'username', 'anonymous'),
        }
    )
    return location, True
