"""
Weather service that fetches a multi-day forecast for a trip's city.
"""
import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional

import httpx

from clients.weather_client import CityNotFoundError, WeatherClient
from config.settings import settings

logger = logging.getLogger(__name__)


class WeatherService:
    """Service for fetching forecasts for a plan's city and start date."""

    def __init__(self, client: Optional[WeatherClient] = None):
        """Initialize weather client."""
        self.weather_client = client or WeatherClient()

    async def get_forecast(
        self,
        city: str,
        start_date: date,
        days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Get the daily forecast starting at ``start_date``.

        Start dates more than WEATHER_HORIZON_DAYS ahead are answered
        without calling Open-Meteo at all.

        Args:
            city: Destination city.
            start_date: First day of the trip.
            days: Number of days wanted (defaults to WEATHER_FORECAST_DAYS).
            today: Reference date, mainly for tests.

        Returns:
            ``{"daily": {...}}`` or ``{"daily": None, "reason": str}``
        """
        today = today or date.today()
        horizon_end = today + timedelta(days=settings.WEATHER_HORIZON_DAYS)

        if start_date > horizon_end:
            return {"daily": None, "reason": "Date too far"}
        if start_date < today:
            return {"daily": None, "reason": "Date in the past"}

        days = max(days or settings.WEATHER_FORECAST_DAYS, 1)
        end_date = min(start_date + timedelta(days=days - 1), horizon_end)

        try:
            forecast = await self.weather_client.get_daily_forecast(
                city, start_date.isoformat(), end_date.isoformat(),
            )
        except CityNotFoundError:
            logger.info(f"Weather: city not found '{city}'")
            return {"daily": None, "reason": "City not found"}
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Failed to fetch weather for {city}: {e}")
            return {"daily": None, "reason": "Failed to fetch weather"}

        return {
            "city": forecast["city"],
            "country": forecast["country"],
            "timezone": forecast["timezone"],
            "daily": {
                "dates": forecast["dates"],
                "weather_codes": forecast["weather_codes"],
                "conditions": forecast["conditions"],
                "temps_max": forecast["temps_max"],
                "temps_min": forecast["temps_min"],
            },
        }
