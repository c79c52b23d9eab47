# coastal_watch/services/risk_predictor.py
import math
from datetime import datetime
from typing import Dict, Any, Optional

import numpy as np

# Upper bound of the random draw for each factor
FACTOR_CEILINGS = {
    "seismic_activity": 0.8,
    "weather_conditions": 0.7,
    "historical_data": 0.6,
    "ocean_current": 0.9,
    "rainfall": 0.5,
    "elevation": 0.3,
    "population_density": 0.4,
}

_HIGH_RISK = {"historical_data": 0.85, "seismic_activity": 0.7, "ocean_current": 0.8}
_SOUTHERN_TIP = {"historical_data": 0.75, "seismic_activity": 0.6, "ocean_current": 0.9}
_ISLANDS = {"historical_data": 0.8, "weather_conditions": 0.8, "ocean_current": 0.9}
_MONSOON_CITIES = {"historical_data": 0.6, "weather_conditions": 0.7, "population_density": 0.8}
_HEAVY_RAIN = {"historical_data": 0.5, "rainfall": 0.7, "weather_conditions": 0.6}
_SOUTHWEST_MONSOON = {"historical_data": 0.4, "weather_conditions": 0.8, "ocean_current": 0.7}

# Known coastal locations pin some factors to historical values
LOCATION_OVERRIDES = {
    # 2004 tsunami impact zone
    "Chennai": _HIGH_RISK,
    "Cuddalore": _HIGH_RISK,
    "Nagapattinam": _HIGH_RISK,
    "Rameswaram": _HIGH_RISK,
    "Kanyakumari": _SOUTHERN_TIP,
    "Tuticorin": _SOUTHERN_TIP,
    "Kochi": _SOUTHERN_TIP,
    # cyclone-prone islands
    "Port Blair": _ISLANDS,
    "Kavaratti": _ISLANDS,
    "Mumbai": _MONSOON_CITIES,
    "Goa": _MONSOON_CITIES,
    "Kolkata": _HEAVY_RAIN,
    "Visakhapatnam": _HEAVY_RAIN,
    "Mangalore": _SOUTHWEST_MONSOON,
    "Kozhikode": _SOUTHWEST_MONSOON,
}

RECOMMENDED_ACTIONS = [
    "Evacuate low-lying areas",
    "Prepare emergency supplies",
    "Monitor local authorities",
    "Follow evacuation routes",
]

ALERT_THRESHOLD = 60


def risk_level_for(score: float) -> str:
    if score > 80:
        return "critical"
    if score > 60:
        return "high"
    if score > 30:
        return "medium"
    return "low"


def draw_factors(location_name: Optional[str], rng: np.random.Generator) -> Dict[str, float]:
    factors = {name: float(rng.random() * ceiling) for name, ceiling in FACTOR_CEILINGS.items()}
    factors.update(LOCATION_OVERRIDES.get(location_name or "", {}))
    return factors


def tsunami_risk(f: Dict[str, float]) -> float:
    return (
        f.get("seismic_activity", 0) * 0.4
        + f.get("weather_conditions", 0) * 0.3
        + f.get("historical_data", 0) * 0.2
        + f.get("ocean_current", 0) * 0.1
    ) * 100


def flood_risk(f: Dict[str, float]) -> float:
    return (
        f.get("rainfall", 0) * 0.5
        + f.get("weather_conditions", 0) * 0.3
        + f.get("elevation", 0) * 0.1
        + f.get("population_density", 0) * 0.1
    ) * 100


def predict_location(
    latitude: float,
    longitude: float,
    location_name: Optional[str] = None,
    rng: Optional[np.random.Generator] = None,
) -> Dict[str, Any]:
    """
    Score one location. Returns {"predictions": [...], "alerts": [...]} with
    at most one prediction (the dominant hazard) and one alert when that
    hazard's risk exceeds ALERT_THRESHOLD.
    """
    rng = rng or np.random.default_rng()
    factors = draw_factors(location_name, rng)

    tsunami = tsunami_risk(factors)
    flood = flood_risk(factors)
    primary_hazard = "tsunami" if tsunami > flood else "flood"
    primary_risk = max(tsunami, flood)
    level = risk_level_for(primary_risk)
    label = location_name or f"{latitude:.4f}, {longitude:.4f}"

    prediction = {
        "hazard_type": primary_hazard,
        "risk_level": level,
        "risk_score": round(primary_risk, 2),
        "latitude": latitude,
        "longitude": longitude,
        "location_name": location_name,
        "prediction_timeframe": "24h",
        "confidence_score": round(75 + float(rng.random()) * 20, 2),
        "factors": factors,
        "status": "active",
    }

    alerts = []
    if primary_risk > ALERT_THRESHOLD:
        alerts.append({
            "alert_level": level,
            "message": f"{level.upper()} {primary_hazard} risk detected at {label}. Immediate action required.",
            "affected_population": int(math.floor(factors["population_density"] * 100000)),
            "recommended_actions": list(RECOMMENDED_ACTIONS),
            "is_active": True,
            "timestamp": datetime.utcnow().isoformat(),
        })

    return {"predictions": [prediction], "alerts": alerts}
