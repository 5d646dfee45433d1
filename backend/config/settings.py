"""
Centralized configuration management for the Trip Map backend.

Loads environment variables from .env file and provides typed settings
to all backend modules. Includes validation for required configuration.

Usage:
    from config.settings import settings
    api_key = settings.GOOGLE_PLACES_API_KEY
"""

import os
from typing import List
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory
_backend_dir = Path(__file__).resolve().parent.parent
load_dotenv(_backend_dir / ".env")


class Settings:
    """Centralized configuration singleton for all backend services."""

    # ===== FastAPI Configuration =====
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "3000"))
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # ===== Groq API Configuration (Primary LLM) =====
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TEMPERATURE: float = float(os.getenv("GROQ_TEMPERATURE", "0.7"))
    GROQ_MAX_TOKENS: int = int(os.getenv("GROQ_MAX_TOKENS", "4096"))
    GROQ_TIMEOUT: int = int(os.getenv("GROQ_TIMEOUT", "30"))

    # ===== Gemini API Configuration (Fallback LLM) =====
    GEMINI_KEY: str = os.getenv("GEMINI_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))
    GEMINI_MAX_TOKENS: int = int(os.getenv("GEMINI_MAX_TOKENS", "8192"))
    GEMINI_TIMEOUT: int = int(os.getenv("GEMINI_TIMEOUT", "60"))
    GEMINI_MAX_RETRIES: int = int(os.getenv("GEMINI_MAX_RETRIES", "2"))

    # ===== Google Maps Platform =====
    GOOGLE_PLACES_API_KEY: str = os.getenv("GOOGLE_PLACES_API_KEY", "")
    # Directions may use its own key; otherwise the Places key is reused
    GOOGLE_DIRECTIONS_API_KEY: str = (
        os.getenv("GOOGLE_DIRECTIONS_API_KEY") or GOOGLE_PLACES_API_KEY
    )
    PLACES_LANGUAGE: str = os.getenv("PLACES_LANGUAGE", "en")
    PLACES_REGION: str = os.getenv("PLACES_REGION", "")
    PLACES_MAX_RESULTS: int = int(os.getenv("PLACES_MAX_RESULTS", "3"))
    PROXIMITY_RADIUS_M: int = int(os.getenv("PROXIMITY_RADIUS_M", "20000"))
    PHOTO_MAX_WIDTH: int = int(os.getenv("PHOTO_MAX_WIDTH", "400"))
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "15"))

    # ===== Map / Itinerary Sync =====
    GEOCODE_MAX_CONCURRENCY: int = int(os.getenv("GEOCODE_MAX_CONCURRENCY", "4"))
    DEFAULT_CENTER_LAT: float = float(os.getenv("DEFAULT_CENTER_LAT", "23.7"))
    DEFAULT_CENTER_LNG: float = float(os.getenv("DEFAULT_CENTER_LNG", "121.0"))
    DEFAULT_ZOOM: int = int(os.getenv("DEFAULT_ZOOM", "12"))
    MARKER_FOCUS_ZOOM: int = 15
    DEFAULT_TRAVEL_MODE: str = os.getenv("DEFAULT_TRAVEL_MODE", "DRIVING")
    VALID_TRAVEL_MODES: List[str] = ["DRIVING", "TRANSIT", "WALKING"]
    MAX_MAP_SESSIONS: int = int(os.getenv("MAX_MAP_SESSIONS", "200"))

    # ===== Weather (Open-Meteo, no key) =====
    WEATHER_HORIZON_DAYS: int = 14
    WEATHER_FORECAST_DAYS: int = int(os.getenv("WEATHER_FORECAST_DAYS", "7"))

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> List[str]:
        """Validate required configuration. Returns list of errors (empty = valid)."""
        errors = []

        if not cls.GROQ_API_KEY and not cls.GEMINI_KEY:
            errors.append(
                "At least one of GROQ_API_KEY or GEMINI_KEY is required: "
                "set it in backend/.env"
            )

        if not cls.GOOGLE_PLACES_API_KEY:
            errors.append("GOOGLE_PLACES_API_KEY is required: set it in backend/.env")

        if not 0 <= cls.GROQ_TEMPERATURE <= 2:
            errors.append(f"GROQ_TEMPERATURE must be 0-2, got {cls.GROQ_TEMPERATURE}")

        if cls.DEFAULT_TRAVEL_MODE not in cls.VALID_TRAVEL_MODES:
            errors.append(
                f"DEFAULT_TRAVEL_MODE must be one of {cls.VALID_TRAVEL_MODES}, "
                f"got {cls.DEFAULT_TRAVEL_MODE}"
            )

        if cls.GEOCODE_MAX_CONCURRENCY < 1:
            errors.append(
                f"GEOCODE_MAX_CONCURRENCY must be >= 1, got {cls.GEOCODE_MAX_CONCURRENCY}"
            )

        if not 1 <= cls.PORT <= 65535:
            errors.append(f"PORT must be 1-65535, got {cls.PORT}")

        return errors


def redact_api_key(key: str) -> str:
    """Redact API key to show only last 4 characters."""
    if not key or len(key) < 8:
        return "***INVALID***"
    return f"***...{key[-4:]}"


# Singleton instance: import this everywhere
settings = Settings()
