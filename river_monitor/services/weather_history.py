import logging
from datetime import date
from statistics import mean
from typing import Any, Dict, List, Optional

import requests

from river_monitor.config.settings import Settings, get_settings
from river_monitor.exceptions import UpstreamError, ValidationError
from river_monitor.utils.async_helpers import call_upstream

logger = logging.getLogger(__name__)

DAILY_FIELDS = [
    "temperature_2m_mean",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "rain_sum",
    "et0_fao_evapotranspiration",
]


def daily_means(daily: Dict[str, List[Optional[float]]]) -> Dict[str, Optional[float]]:
    """Mean of each daily series, ignoring nulls; None when a series is empty."""
    averages = {}
    for field in DAILY_FIELDS:
        values = [value for value in daily.get(field) or [] if value is not None]
        averages[field] = round(mean(values), 4) if values else None
    return averages


class WeatherHistoryClient:
    """Client for the Open-Meteo historical weather archive."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.http = session or requests.Session()

    def _fetch_archive(
        self, latitude: float, longitude: float, start: date, end: date
    ) -> Dict[str, Any]:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
        }
        try:
            response = self.http.get(
                self.settings.weather_api_url,
                params=params,
                timeout=self.settings.weather_timeout_seconds,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"Weather API request failed: {e}") from e

        if response.status_code == 400:
            # Open-Meteo rejects out-of-range dates and coordinates with a reason
            try:
                reason = response.json().get("reason", response.text)
            except ValueError:
                reason = response.text
            raise ValidationError(f"Weather API rejected the request: {reason}")
        try:
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise UpstreamError(f"Weather API request failed: {e}") from e

    async def get_history(
        self, latitude: float, longitude: float, start: date, end: date
    ) -> Dict[str, Any]:
        """Daily weather for the period, summarised as per-field means."""
        payload = await call_upstream(
            self._fetch_archive,
            latitude,
            longitude,
            start,
            end,
            timeout=self.settings.weather_timeout_seconds * 2,
        )

        daily = payload.get("daily") or {}
        days = len(daily.get("time") or [])
        if days == 0:
            logger.warning(f"Incomplete weather data returned for lat={latitude} lon={longitude}")

        return {
            "latitude": latitude,
            "longitude": longitude,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "days": days,
            "averages": daily_means(daily),
        }
