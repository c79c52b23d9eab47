# coastal_watch/services/social_analytics.py
import re
import csv
import json
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional, Tuple

import pandas as pd

from coastal_watch.constants import HAZARD_TYPES, SENTIMENTS
from coastal_watch.services import ValidationError

POST_COLUMNS = [
    "id", "source", "content", "hazard_type", "sentiment",
    "latitude", "longitude", "location_name", "created_at",
]

# -----------------------------
# Keyword tables for classification
# -----------------------------
HAZARD_KEYWORDS = {
    "tsunami": ["tsunami", "tidal wave", "sea receding", "sea withdrew"],
    "storm_surge": ["storm surge", "stormsurge", "cyclone", "hurricane", "typhoon"],
    "flood": ["flood", "flooding", "waterlogging", "water levels rising", "inundat", "submerged"],
    "high_waves": ["high waves", "huge waves", "big waves", "rough sea", "high surf", "swell"],
    "abnormal_sea_behavior": [
        "strange currents", "acting really strange", "abnormal sea", "sea level rise",
        "unusual tide", "rip current", "sea is acting",
    ],
}

NEGATIVE_WORDS = [
    "danger", "dangerous", "emergency", "evacuate", "evacuation", "alert", "warning",
    "damage", "destroyed", "dead", "death", "missing", "trapped", "rescue", "stranded",
    "panic", "scary", "hitting", "rising rapidly", "help", "stay safe",
]
POSITIVE_WORDS = [
    "beautiful", "calm", "safe now", "all clear", "lovely", "peaceful", "great", "relief",
    "restored", "recovered", "sunny",
]

# Approximate coordinates for place names that show up in posts
LOCATION_COORDINATES = {
    "mumbai": (19.0760, 72.8777),
    "chennai": (13.0827, 80.2707),
    "kolkata": (22.5726, 88.3639),
    "kochi": (9.9312, 76.2673),
    "visakhapatnam": (17.6868, 83.2185),
    "gujarat": (23.0225, 72.5714),
    "odisha": (20.9517, 85.0985),
    "kerala": (10.8505, 76.2711),
    "tamil nadu": (11.1271, 78.6569),
    "west bengal": (22.9868, 87.8550),
    "andhra pradesh": (15.9129, 79.7400),
    "karnataka": (15.3173, 75.7139),
    "goa": (15.2993, 74.1240),
    "maharashtra": (19.7515, 75.7139),
    "bay of bengal": (15.0000, 90.0000),
    "arabian sea": (16.0000, 68.0000),
    "indian ocean": (10.0000, 75.0000),
}

TIME_RANGE_HOURS = {"1h": 1, "6h": 6, "24h": 24, "7d": 168, "all": None}
INTENSITY_METRICS = ("count", "negative_ratio", "hazard_diversity")
EXPORT_FORMATS = ("json", "csv", "txt")

STOPWORDS = {
    "this", "that", "with", "from", "have", "been", "were", "they", "their", "there",
    "what", "when", "where", "will", "would", "about", "just", "into", "over", "near",
    "today", "very", "your", "please", "everyone", "area", "areas", "https",
}


def classify_post(text: str) -> Tuple[Optional[str], str]:
    """Keyword classification: returns (hazard_type or None, sentiment)."""
    t = (text or "").lower()

    hazard = None
    for hazard_type, words in HAZARD_KEYWORDS.items():
        if any(w in t for w in words):
            hazard = hazard_type
            break

    neg = sum(1 for w in NEGATIVE_WORDS if w in t)
    pos = sum(1 for w in POSITIVE_WORDS if w in t)
    # ties go negative only when the post is about a hazard
    if neg > pos or (hazard and neg and neg == pos):
        sentiment = "negative"
    elif pos > neg:
        sentiment = "positive"
    else:
        sentiment = "neutral"
    return hazard, sentiment


def detect_location(text: str) -> Optional[Tuple[str, float, float]]:
    t = (text or "").lower()
    # longest names first so "west bengal" wins over "bengal"-like overlaps
    for name in sorted(LOCATION_COORDINATES, key=len, reverse=True):
        if name in t:
            lat, lng = LOCATION_COORDINATES[name]
            return name.title(), lat, lng
    return None


def post_risk(hazard_type, sentiment) -> str:
    if hazard_type and sentiment == "negative":
        return "HIGH"
    if hazard_type:
        return "MEDIUM"
    return "LOW"


def _frame(posts: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(posts, columns=POST_COLUMNS)
    df["created_at"] = pd.to_datetime(df["created_at"], format="ISO8601", errors="coerce")
    return df


def _counts(series: pd.Series) -> Dict[str, int]:
    return {str(k): int(v) for k, v in series.dropna().value_counts().items()}


def filter_posts(
    posts: List[Dict[str, Any]],
    hazard_type: str = "all",
    sentiment: str = "all",
    time_range: str = "all",
    critical_only: bool = False,
    now: Optional[datetime] = None,
) -> pd.DataFrame:
    if hazard_type != "all" and hazard_type not in HAZARD_TYPES:
        raise ValidationError(f"Unknown hazard_type: {hazard_type}")
    if sentiment != "all" and sentiment not in SENTIMENTS:
        raise ValidationError(f"Unknown sentiment: {sentiment}")
    if time_range not in TIME_RANGE_HOURS:
        raise ValidationError(f"Unknown time_range: {time_range}")

    df = _frame(posts)
    if hazard_type != "all":
        df = df[df["hazard_type"] == hazard_type]
    if sentiment != "all":
        df = df[df["sentiment"] == sentiment]

    hours = TIME_RANGE_HOURS[time_range]
    if hours is not None:
        cutoff = (now or datetime.utcnow()) - timedelta(hours=hours)
        df = df[df["created_at"] >= cutoff]

    if critical_only:
        df = df[df["hazard_type"].notna() & (df["sentiment"] == "negative")]
    return df


def trending_keywords(contents: List[str], top: int = 10) -> List[Dict[str, Any]]:
    words = []
    for text in contents:
        for w in re.findall(r"#?[a-z][a-z']{3,}", (text or "").lower()):
            if w.lstrip("#") not in STOPWORDS:
                words.append(w)
    if not words:
        return []
    vc = pd.Series(words).value_counts().head(top)
    return [{"keyword": k, "count": int(v)} for k, v in vc.items()]


# ---------------------------------------------------------------
# ALERT SUMMARY
# ---------------------------------------------------------------
def alert_summary(posts: List[Dict[str, Any]]) -> Dict[str, Any]:
    df = _frame(posts)
    total = int(len(df))
    hazard_df = df[df["hazard_type"].notna()]
    hazard_posts = int(len(hazard_df))
    risk_pct = round(hazard_posts / total * 100) if total else 0

    if risk_pct >= 70:
        level = "HIGH"
    elif risk_pct >= 40:
        level = "MEDIUM"
    else:
        level = "LOW"

    critical = df[df["hazard_type"].notna() & (df["sentiment"] == "negative")]
    critical = critical.sort_values("created_at", ascending=False).head(10)
    critical_ids = set(critical["id"].tolist())

    return {
        "generated_at": datetime.utcnow().isoformat(),
        "summary": {
            "total_posts": total,
            "hazard_posts": hazard_posts,
            "alert_level": level,
            "risk_percentage": int(risk_pct),
        },
        "breakdown": {
            "by_sentiment": _counts(df["sentiment"]),
            "by_hazard_type": _counts(df["hazard_type"]),
            "by_source": _counts(df["source"]),
        },
        "trending_keywords": trending_keywords(df["content"].tolist()),
        "critical_posts": [p for p in posts if p.get("id") in critical_ids],
    }


# ---------------------------------------------------------------
# HEATMAP
# ---------------------------------------------------------------
def heatmap(
    posts: List[Dict[str, Any]],
    hazard_type: str = "all",
    time_range: str = "24h",
    metric: str = "count",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if metric not in INTENSITY_METRICS:
        raise ValidationError(f"Unknown intensity metric: {metric}")

    df = filter_posts(posts, hazard_type=hazard_type, time_range=time_range, now=now)
    df = df[df["location_name"].notna()].copy()
    df["location_key"] = df["location_name"].str.lower().str.strip()

    points = []
    for location, group in df.groupby("location_key"):
        coords = LOCATION_COORDINATES.get(location)
        if coords is None:
            located = group.dropna(subset=["latitude", "longitude"])
            if located.empty:
                continue
            coords = (float(located["latitude"].mean()), float(located["longitude"].mean()))

        hazards = sorted(group["hazard_type"].dropna().unique().tolist())
        total = int(len(group))
        negative = int((group["sentiment"] == "negative").sum())

        if metric == "negative_ratio":
            intensity = negative / total * 100 if total else 0.0
        elif metric == "hazard_diversity":
            intensity = len(hazards)
        else:
            intensity = total

        points.append({
            "lat": coords[0],
            "lng": coords[1],
            "intensity": float(intensity),
            "count": total,
            "location": location,
            "hazards": hazards,
        })

    points.sort(key=lambda p: p["intensity"], reverse=True)
    return {
        "generated_at": datetime.utcnow().isoformat(),
        "filters": {"hazard_type": hazard_type, "time_range": time_range, "intensity_metric": metric},
        "heatmap_points": points,
        "summary": {
            "total_locations": len(points),
            "max_intensity": max((p["intensity"] for p in points), default=0),
            "total_posts": sum(p["count"] for p in points),
        },
    }


# ---------------------------------------------------------------
# EXPORT
# ---------------------------------------------------------------
def export_posts(
    posts: List[Dict[str, Any]],
    fmt: str = "json",
    hazard_type: str = "all",
    sentiment: str = "all",
    time_range: str = "all",
    critical_only: bool = False,
    include_location: bool = True,
    now: Optional[datetime] = None,
) -> Tuple[str, str, str]:
    """Returns (body, mimetype, filename)."""
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unknown export format: {fmt}")

    df = filter_posts(posts, hazard_type, sentiment, time_range, critical_only, now=now)
    rows = []
    for rec in df.sort_values("created_at", ascending=False).to_dict("records"):
        hazard = rec["hazard_type"] if isinstance(rec["hazard_type"], str) else None
        created = rec["created_at"]
        rows.append({
            "id": int(rec["id"]) if pd.notna(rec["id"]) else None,
            "source": rec["source"],
            "content": rec["content"],
            "hazard_type": hazard,
            "sentiment": rec["sentiment"],
            "location": rec["location_name"] if include_location and isinstance(rec["location_name"], str) else None,
            "created_at": created.isoformat() if pd.notna(created) else None,
            "risk_score": post_risk(hazard, rec["sentiment"]),
        })

    stamp = (now or datetime.utcnow()).strftime("%Y-%m-%d")
    base = f"critical-posts-{stamp}"

    if fmt == "csv":
        out = pd.DataFrame(rows, columns=[
            "id", "source", "content", "hazard_type", "sentiment", "location", "created_at", "risk_score",
        ])
        out.columns = ["ID", "Source", "Content", "Hazard Type", "Sentiment", "Location", "Created At", "Risk Score"]
        body = out.to_csv(index=False, quoting=csv.QUOTE_ALL)
        return body, "text/csv", f"{base}.csv"

    if fmt == "txt":
        body = "".join(
            f"=== POST {p['id']} ===\n"
            f"Source: {p['source']}\n"
            f"Hazard: {p['hazard_type'] or 'None'}\n"
            f"Sentiment: {p['sentiment']}\n"
            f"Location: {p['location'] or 'Unknown'}\n"
            f"Risk: {p['risk_score']}\n"
            f"Time: {p['created_at']}\n"
            f"Content: {p['content']}\n\n"
            for p in rows
        )
        return body, "text/plain", f"{base}.txt"

    body = json.dumps({
        "exported_at": datetime.utcnow().isoformat(),
        "filters_applied": {
            "hazard_type": hazard_type,
            "sentiment": sentiment,
            "time_range": time_range,
            "critical_only": critical_only,
            "include_location": include_location,
        },
        "total_posts": len(rows),
        "posts": rows,
    }, indent=2)
    return body, "application/json", f"{base}.json"
