import logging
from typing import List, Optional, Tuple

from django.db import transaction
from django.db.models import Q

from ..models import Location, WeatherSnapshot
from .location_matcher import find_near, resolve_or_create
from .snapshots import latest_snapshot

logger = logging.getLogger("weather")


def list_favorites(user) -> List[Tuple[Location, Optional[WeatherSnapshot]]]:
    """
    Favorite locations owned by `user`, each paired with the latest weather
    for that place (or None).

    Weather lookups refresh whichever row `find_near` picks for the
    coordinates, which may be another user's copy of the same place, so that
    row's snapshot is used when it is newer than the favorite's own.
    """
    locations = Location.objects.filter(
        user=user, is_favorite=True
    ).select_related('snapshot').order_by('id')

    favorites = []
    for location in locations:
        try:
            snapshot = location.snapshot
        except WeatherSnapshot.DoesNotExist:
            snapshot = None

        canonical = find_near(location.latitude, location.longitude)
        if canonical is not None and canonical.pk != location.pk:
            shared = latest_snapshot(canonical)
            if shared is not None and (snapshot is None or shared.timestamp > snapshot.timestamp):
                snapshot = shared

        favorites.append((location, snapshot))
    return favorites


def add_favorite(user, latitude: float, longitude: float, name: str, country_code: str = "") -> Location:
    """
    Mark the place at (latitude, longitude) as one of `user`'s favorites.

    Shared locations and the user's own locations are reused and claimed;
    another user's location is never touched, a new owned row is made instead.
    Calling it again for the same place is a no-op.
    """
    scope = Location.objects.filter(Q(user__isnull=True) | Q(user=user))

    with transaction.atomic():
        location, created = resolve_or_create(
            latitude,
            longitude,
            name=name,
            country_code=country_code,
            owner=user,
            queryset=scope,
        )
        if created or not location.is_favorite or location.user_id != user.pk:
            location.is_favorite = True
            location.user = user
            location.save(update_fields=['is_favorite', 'user'])

    logger.info(
        "Favorite added",
        extra={
            'event': 'favorite_added',
            'user': user.username,
            'location_id': location.id,
            'lat': latitude,
            'lon': longitude,
        }
    )
    return location


def remove_favorite(user, location_id) -> bool:
    """
    Delete a location owned by `user`, with its snapshot and forecast.
    Returns False when the id is unknown or belongs to someone else.
    """
    deleted, _ = Location.objects.filter(pk=location_id, user=user).delete()
    if not deleted:
        logger.warning(
            "Favorite not removed - missing or not owned",
            extra={
                'event': 'favorite_remove_denied',
                'user': user.username,
                'location_id': location_id,
            }
        )
        return False

    logger.info(
        "Favorite removed",
        extra={
            'event': 'favorite_removed',
            'user': user.username,
            'location_id': location_id,
        }
    )
    return True
