# coastal_watch/services/twitter_client.py
import logging
from typing import Dict, Any, Optional

import requests
from flask import current_app

from coastal_watch.services import ServiceNotConfigured, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"

DEFAULT_QUERY = (
    "(tsunami OR flood OR \"storm surge\" OR \"high waves\" OR cyclone OR \"coastal flooding\") "
    "lang:en -is:retweet"
)


def _bearer() -> str:
    token = current_app.config.get("TWITTER_BEARER_TOKEN")
    if not token:
        raise ServiceNotConfigured("Missing TWITTER_BEARER_TOKEN")
    return token


def _recent_search(query: str, max_results: int = 10, next_token: Optional[str] = None) -> Dict[str, Any]:
    params = {
        "query": query,
        "max_results": str(min(max(10, int(max_results)), 100)),
        "tweet.fields": "created_at,author_id,public_metrics,lang",
        "expansions": "author_id",
        "user.fields": "username,name,profile_image_url",
    }
    if next_token:
        params["pagination_token"] = next_token

    headers = {
        "Authorization": f"Bearer {_bearer()}",
        "User-Agent": "CoastalWatch/1.0",
    }
    try:
        resp = requests.get(SEARCH_URL, params=params, headers=headers,
                            timeout=current_app.config["HTTP_TIMEOUT"])
    except requests.RequestException as e:
        logger.error("Twitter request failed: %s", e)
        raise UpstreamError("Twitter API unreachable", detail=str(e))

    try:
        data = resp.json()
    except ValueError:
        data = {"message": resp.text}
    if not resp.ok:
        logger.error("Twitter API error %s: %s", resp.status_code, data)
        raise UpstreamError("Twitter API error", detail=data, upstream_status=resp.status_code)
    return data


def search_tweets(q: str, max_results: int = 10, next_token: Optional[str] = None) -> Dict[str, Any]:
    """
    Recent-search wrapper. Returns {"meta": {...}, "tweets": [...]}, each tweet
    carrying its author (joined from includes.users) or None.
    """
    q = str(q or "").strip()[:500]
    if not q:
        raise ValidationError("Missing q (query) parameter")
    try:
        max_results = int(max_results)
    except (TypeError, ValueError):
        raise ValidationError("max_results must be an integer")

    data = _recent_search(q, max_results, next_token)
    users = {u["id"]: u for u in (data.get("includes") or {}).get("users", [])}

    tweets = []
    for t in data.get("data") or []:
        u = users.get(t.get("author_id"))
        tweets.append({
            "id": t.get("id"),
            "text": t.get("text"),
            "created_at": t.get("created_at"),
            "lang": t.get("lang"),
            "metrics": t.get("public_metrics"),
            "author": {
                "id": u.get("id"),
                "username": u.get("username"),
                "name": u.get("name"),
                "profile_image_url": u.get("profile_image_url"),
            } if u else None,
        })
    return {"meta": data.get("meta") or {}, "tweets": tweets}


def fetch_tweets() -> list:
    """Latest hazard-related tweets for the feed page."""
    return search_tweets(DEFAULT_QUERY)["tweets"]
