# coastal_watch/services/weather_client.py
import logging
from datetime import datetime
from typing import Dict, Any

import requests
from flask import current_app

from coastal_watch.services import ServiceNotConfigured, UpstreamError

logger = logging.getLogger(__name__)

CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"


def _api_key() -> str:
    key = current_app.config.get("OPENWEATHER_API_KEY")
    if not key:
        raise ServiceNotConfigured("OpenWeatherMap API key not configured")
    return key


def _get(url: str, lat: float, lon: float) -> Dict[str, Any]:
    params = {"lat": lat, "lon": lon, "appid": _api_key(), "units": "metric"}
    try:
        resp = requests.get(url, params=params, timeout=current_app.config["HTTP_TIMEOUT"])
    except requests.RequestException as e:
        logger.error("OpenWeatherMap request failed: %s", e)
        raise UpstreamError("Weather API unreachable", detail=str(e))
    try:
        data = resp.json()
    except ValueError:
        raise UpstreamError("Weather API returned invalid JSON", upstream_status=resp.status_code)
    if not resp.ok:
        raise UpstreamError(
            data.get("message", "Weather API error"),
            detail=data, upstream_status=resp.status_code,
        )
    return data


def preprocess_openweather(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Take the raw JSON from OpenWeather and return the flat observation dict.
    Raises UpstreamError if OpenWeather returned an error payload.
    """
    # error payloads look like {"cod": 401, "message": "Invalid API key"}; cod may be a string
    cod = str(raw.get("cod", "200"))
    if cod != "200":
        raise UpstreamError(raw.get("message", "Weather API error"), detail=raw)

    main = raw.get("main", {})
    wind = raw.get("wind", {})
    weather_list = raw.get("weather") or [{}]
    precipitation = (raw.get("rain") or {}).get("1h") or (raw.get("snow") or {}).get("1h") or 0
    visibility = raw.get("visibility")

    return {
        "temperature": main.get("temp"),
        "humidity": main.get("humidity"),
        "pressure": main.get("pressure"),
        "wind_speed": wind.get("speed"),
        "wind_direction": wind.get("deg"),
        "visibility": visibility / 1000 if visibility is not None else None,
        "precipitation": precipitation,
        "weather_condition": weather_list[0].get("main"),
        "weather_description": weather_list[0].get("description"),
        "timestamp": datetime.utcnow().isoformat(),
    }


def get_current_weather(lat: float, lon: float) -> Dict[str, Any]:
    return preprocess_openweather(_get(CURRENT_URL, lat, lon))


def get_forecast(lat: float, lon: float, slots: int = 16) -> list:
    """3-hourly forecast entries; 16 slots cover the next 48 hours."""
    data = _get(FORECAST_URL, lat, lon)
    return (data.get("list") or [])[:slots]
