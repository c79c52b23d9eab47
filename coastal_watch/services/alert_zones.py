# coastal_watch/services/alert_zones.py
import math
from typing import Dict, List, Any, Tuple

from coastal_watch.services import ValidationError

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    lat1, lon1 = a
    lat2, lon2 = b
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    x = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, x)))


def _zone_level(count: int, hazards: List[str]) -> str:
    if count >= 5 or "tsunami" in hazards:
        return "critical"
    if count >= 3:
        return "high"
    return "medium"


def cluster_reports(reports: List[Dict[str, Any]], radius_km: float = 25.0, min_reports: int = 2) -> List[Dict[str, Any]]:
    """
    Group reports into alert zones. Two reports share a zone when a chain of
    reports, each within radius_km of the next, links them. Zones with fewer
    than min_reports members are dropped.
    """
    if radius_km <= 0:
        raise ValidationError("radius_km must be positive")
    if min_reports < 1:
        raise ValidationError("min_reports must be at least 1")

    points = [r for r in reports if r.get("latitude") is not None and r.get("longitude") is not None]
    n = len(points)
    zone_of = [-1] * n
    zones: List[List[int]] = []

    for i in range(n):
        if zone_of[i] != -1:
            continue
        zone_of[i] = len(zones)
        members = [i]
        queue = [i]
        while queue:
            j = queue.pop()
            pj = (points[j]["latitude"], points[j]["longitude"])
            for k in range(n):
                if zone_of[k] != -1:
                    continue
                if haversine_km(pj, (points[k]["latitude"], points[k]["longitude"])) <= radius_km:
                    zone_of[k] = zone_of[i]
                    members.append(k)
                    queue.append(k)
        zones.append(members)

    out = []
    for members in zones:
        if len(members) < min_reports:
            continue
        group = [points[m] for m in members]
        lat = sum(r["latitude"] for r in group) / len(group)
        lng = sum(r["longitude"] for r in group) / len(group)
        spread = max(haversine_km((lat, lng), (r["latitude"], r["longitude"])) for r in group)

        counts: Dict[str, int] = {}
        for r in group:
            counts[r["hazard_type"]] = counts.get(r["hazard_type"], 0) + 1
        hazards = sorted(counts)
        dominant = max(hazards, key=lambda h: counts[h])
        times = sorted(r["created_at"] for r in group if r.get("created_at"))

        out.append({
            "center": {"latitude": round(lat, 6), "longitude": round(lng, 6)},
            "radius_km": round(spread, 3),
            "report_count": len(group),
            "report_ids": sorted(r["id"] for r in group),
            "hazard_types": hazards,
            "dominant_hazard": dominant,
            "alert_level": _zone_level(len(group), hazards),
            "location_names": sorted({r["location_name"] for r in group if r.get("location_name")}),
            "first_reported_at": times[0] if times else None,
            "last_reported_at": times[-1] if times else None,
        })

    out.sort(key=lambda z: z["report_count"], reverse=True)
    return out
