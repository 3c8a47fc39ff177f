from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from django.utils import timezone

from .snapshots import MAX_FORECAST_DAYS


def precipitation_chance(pop) -> int:
    """Probability of precipitation (0..1) as a whole percentage, halves rounded up."""
    if pop is None:
        return 0
    percent = Decimal(str(pop)) * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sample_precipitation(sample: dict) -> float:
    rain = (sample.get("rain") or {}).get("3h", 0) or 0
    snow = (sample.get("snow") or {}).get("3h", 0) or 0
    return rain + snow


def aggregate_daily(samples: Iterable[dict], tz=None) -> List[dict]:
    """
    Collapse fixed-interval forecast samples (OpenWeather `list` items) into
    calendar days.

    High/low are the extremes of the per-sample temp_max/temp_min. Description,
    icon, humidity, wind and precipitation chance come from the first sample of
    the day; precipitation is the day's total rain plus snow. At most seven
    days are returned, earliest first.
    """
    tz = tz or timezone.get_default_timezone()
    days = {}

    for sample in sorted(samples, key=lambda s: s["dt"]):
        moment = datetime.fromtimestamp(sample["dt"], tz=dt_timezone.utc).astimezone(tz)
        day_key = moment.date()
        main = sample.get("main", {})
        weather = (sample.get("weather") or [{}])[0]

        day = days.get(day_key)
        if day is None:
            days[day_key] = {
                "date": day_key,
                "temp_high": main.get("temp_max"),
                "temp_low": main.get("temp_min"),
                "description": weather.get("description", ""),
                "icon": weather.get("icon", ""),
                "humidity": main.get("humidity"),
                "wind_speed": sample.get("wind", {}).get("speed"),
                "precipitation": sample_precipitation(sample),
                "precipitation_chance": precipitation_chance(sample.get("pop")),
            }
            continue

        day["temp_high"] = max(day["temp_high"], main.get("temp_max"))
        day["temp_low"] = min(day["temp_low"], main.get("temp_min"))
        day["precipitation"] += sample_precipitation(sample)

    result = [days[key] for key in sorted(days)][:MAX_FORECAST_DAYS]
    for day in result:
        day["precipitation"] = round(day["precipitation"], 2)
    return result
