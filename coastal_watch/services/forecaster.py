# coastal_watch/services/forecaster.py
import re
import json
import logging
from typing import Dict, Any, List

import requests
from flask import current_app

from coastal_watch.services import ServiceNotConfigured, UpstreamError, ValidationError
from coastal_watch.services.weather_client import get_forecast

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
MISTRAL_URL = "https://api.mistral.ai/v1/chat/completions"

GEMINI_HAZARDS = [
    "High Surf Advisory",
    "Rip Currents",
    "Tsunami",
    "Storm Surge",
    "Coastal Flooding",
    "Tropical Cyclone / Hurricane",
    "Strong Winds / Gale",
    "Lightning at Sea",
    "Dense Fog",
]

OCEAN_HAZARDS = ["Tropical Cyclone", "Storm Surge", "High Surf Advisory"]

GEMINI_PROMPT = """
You are an ocean hazard prediction AI. Given weather data (temp, humidity, wind speed, pressure, condition),
predict the likelihood of the following {count} hazards within the next 48 hours.

Always return ALL {count} hazards, even if risk is negligible.
For negligible risk, assign a percentage between 1-5%.
Percentages must be integers between 1 and 100, never 0.

Hazards:
{hazard_lines}

Format output strictly as JSON:
{{
  "forecast_summary": "short natural language summary",
  "hazards": [
    {{ "type": "<hazard name>", "likelihood_percentage": <1-100>, "reasoning": "..." }}
  ]
}}

Weather Data:
{weather}
"""

OCEAN_PROMPT = """
You are an expert oceanographer. Based on the following 48-hour weather forecast data, analyze the potential
for {names}.
Return a valid JSON object with the following structure, and nothing else:
{{
  "forecast_summary": "A brief, one-sentence summary.",
  "hazards": [
    {{"type": "<hazard name>", "likelihood_percentage": <0-100>, "reasoning": "Brief reasoning."}}
  ]
}}
Data: {data}
"""


def extract_json_block(raw_text: str) -> Dict[str, Any]:
    """Strip markdown fences and parse the first {...} block of a model reply."""
    text = re.sub(r"```json|```", "", raw_text or "").strip()
    m = re.search(r"\{[\s\S]*\}", text)
    if not m:
        raise UpstreamError("No valid JSON found in model response.", detail=raw_text)
    try:
        return json.loads(m.group(0))
    except ValueError as e:
        raise UpstreamError("Model response JSON could not be parsed.", detail=str(e))


def normalize_hazards(prediction: Dict[str, Any], expected: List[str], floor: int = 1) -> Dict[str, Any]:
    """Clamp likelihoods to [floor, 100] and add any hazard the model left out."""
    by_type = {}
    for h in prediction.get("hazards") or []:
        if not isinstance(h, dict) or not h.get("type"):
            continue
        try:
            pct = int(round(float(h.get("likelihood_percentage", floor))))
        except (TypeError, ValueError):
            pct = floor
        by_type[h["type"]] = {
            "type": h["type"],
            "likelihood_percentage": min(100, max(floor, pct)),
            "reasoning": h.get("reasoning") or "",
        }

    hazards = []
    for name in expected:
        hazards.append(by_type.pop(name, None) or {
            "type": name, "likelihood_percentage": floor, "reasoning": "Not assessed by model.",
        })
    # keep extra hazards the model volunteered
    hazards.extend(by_type.values())

    return {
        "forecast_summary": prediction.get("forecast_summary") or "",
        "hazards": hazards,
    }


def _post_json(url, payload, headers=None, params=None, service="AI"):
    try:
        resp = requests.post(
            url, json=payload, headers=headers, params=params,
            timeout=current_app.config["HTTP_TIMEOUT"],
        )
    except requests.RequestException as e:
        logger.error("%s request failed: %s", service, e)
        raise UpstreamError(f"{service} API unreachable", detail=str(e))

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not resp.ok:
        err = data.get("error")
        msg = err.get("message") if isinstance(err, dict) else (data.get("message") or resp.reason)
        logger.error("%s API error %s: %s", service, resp.status_code, msg)
        raise UpstreamError(f"{service} API Error: {msg}", detail=data, upstream_status=resp.status_code)
    return data


# ---------------------------------------------------------------
# GEMINI: 9-hazard outlook from current weather
# ---------------------------------------------------------------
def gemini_forecast(weather_data: Dict[str, Any]) -> Dict[str, Any]:
    key = current_app.config.get("GEMINI_API_KEY")
    if not key:
        raise ServiceNotConfigured("Google Gemini API key not configured.")
    if not weather_data:
        raise ValidationError("weatherData is required in the request body.")

    prompt = GEMINI_PROMPT.format(
        count=len(GEMINI_HAZARDS),
        hazard_lines="\n".join(f"{i}. {h}" for i, h in enumerate(GEMINI_HAZARDS, 1)),
        weather=json.dumps(weather_data),
    )
    url = GEMINI_URL.format(model=current_app.config["GEMINI_MODEL"])
    data = _post_json(
        url, {"contents": [{"parts": [{"text": prompt}]}]},
        headers={"Content-Type": "application/json"}, params={"key": key}, service="Gemini",
    )

    try:
        raw_text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raw_text = ""
    return normalize_hazards(extract_json_block(raw_text), GEMINI_HAZARDS, floor=1)


# ---------------------------------------------------------------
# MISTRAL: 48h ocean forecast from OpenWeather forecast slots
# ---------------------------------------------------------------
def ocean_forecast(lat: float, lon: float) -> Dict[str, Any]:
    key = current_app.config.get("MISTRAL_API_KEY")
    if not key:
        raise ServiceNotConfigured("Mistral API key not configured.")

    slots = get_forecast(lat, lon, slots=16)
    prompt = OCEAN_PROMPT.format(
        names=", ".join(f'"{h}"' for h in OCEAN_HAZARDS),
        data=json.dumps(slots),
    )
    data = _post_json(
        MISTRAL_URL,
        {
            "model": current_app.config["MISTRAL_MODEL"],
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        },
        headers={
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
        service="Mistral",
    )

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = ""
    return normalize_hazards(extract_json_block(content), OCEAN_HAZARDS, floor=0)
