import json
from datetime import datetime, timedelta

import pytest
import requests

from conftest import FakeResponse
from coastal_watch.services import ValidationError
from coastal_watch.services.social_analytics import (
    classify_post, detect_location, alert_summary, heatmap, export_posts,
)

NOW = datetime(2025, 3, 1, 12, 0)


def _post(id_, content, hazard, sentiment, location=None, hours_ago=1, lat=None, lng=None, source="Twitter"):
    return {
        "id": id_, "source": source, "content": content, "hazard_type": hazard, "sentiment": sentiment,
        "latitude": lat, "longitude": lng, "location_name": location,
        "created_at": (NOW - timedelta(hours=hours_ago)).isoformat(),
    }


POSTS = [
    _post(1, "Flood water entering homes in Chennai #flood", "flood", "negative", "Chennai", 1),
    _post(2, "Sea receding fast near chennai, tsunami warning", "tsunami", "negative", "chennai", 2),
    _post(3, "Huge waves at Juhu, crowds watching #waves", "high_waves", "neutral", "Mumbai", 3),
    _post(4, "Streets flooded in our village, need rescue", "flood", "negative", "Small Village", 1, 12.0, 79.9),
    _post(5, "Lovely sunset tonight", None, "positive", "Nowhere", 1, source="Facebook"),
    _post(6, "Old flooding photos from Mumbai", "flood", "neutral", "Mumbai", 48),
]


@pytest.mark.parametrize("text, hazard, sentiment", [
    ("Huge waves hitting Marina beach in Chennai, stay safe", "high_waves", "negative"),
    ("Tsunami warning issued for the coast", "tsunami", "negative"),
    ("Beautiful calm evening at the beach", None, "positive"),
    ("Flood waters receding, all clear and relief camps open", "flood", "positive"),
    ("Cyclone update from the met office", "storm_surge", "neutral"),
    ("Storm surge flooding the harbour", "storm_surge", "neutral"),
    ("Nothing to report", None, "neutral"),
])
def test_classify_post(text, hazard, sentiment):
    assert classify_post(text) == (hazard, sentiment)


def test_detect_location():
    assert detect_location("Heavy rain across West Bengal tonight") == ("West Bengal", 22.9868, 87.8550)
    assert detect_location("waves in KOCHI") == ("Kochi", 9.9312, 76.2673)
    assert detect_location("somewhere inland") is None


def test_alert_summary():
    posts = [
        _post(1, "flood in town, evacuate", "flood", "negative"),
        _post(2, "tsunami sirens", "tsunami", "negative"),
        _post(3, "rough sea today", "high_waves", "neutral"),
        _post(4, "nice weather", None, "positive", source="Facebook"),
    ]
    out = alert_summary(posts)
    assert out["summary"] == {"total_posts": 4, "hazard_posts": 3, "alert_level": "HIGH", "risk_percentage": 75}
    assert out["breakdown"]["by_sentiment"] == {"negative": 2, "neutral": 1, "positive": 1}
    assert out["breakdown"]["by_source"] == {"Twitter": 3, "Facebook": 1}
    assert sorted(p["id"] for p in out["critical_posts"]) == [1, 2]

    empty = alert_summary([])
    assert empty["summary"]["alert_level"] == "LOW"
    assert empty["critical_posts"] == []


def test_heatmap_groups_by_location():
    out = heatmap(POSTS, now=NOW)
    points = {p["location"]: p for p in out["heatmap_points"]}
    assert set(points) == {"chennai", "mumbai", "small village"}
    assert out["heatmap_points"][0]["location"] == "chennai"
    assert points["chennai"]["count"] == 2
    assert points["chennai"]["lat"] == 13.0827
    assert points["chennai"]["hazards"] == ["flood", "tsunami"]
    # unknown place names fall back to the posts' own coordinates
    assert (points["small village"]["lat"], points["small village"]["lng"]) == (12.0, 79.9)
    assert out["summary"]["total_posts"] == 4

    ratio = {p["location"]: p["intensity"] for p in heatmap(POSTS, metric="negative_ratio", now=NOW)["heatmap_points"]}
    assert ratio == {"chennai": 100.0, "small village": 100.0, "mumbai": 0.0}

    week = {p["location"]: p["count"] for p in heatmap(POSTS, time_range="7d", now=NOW)["heatmap_points"]}
    assert week["mumbai"] == 2

    floods = heatmap(POSTS, hazard_type="flood", metric="hazard_diversity", now=NOW)
    assert {p["location"] for p in floods["heatmap_points"]} == {"chennai", "small village"}

    with pytest.raises(ValidationError):
        heatmap(POSTS, metric="loudness")
    with pytest.raises(ValidationError):
        heatmap(POSTS, time_range="3w")


def test_export_csv():
    body, mimetype, filename = export_posts(POSTS, fmt="csv", now=NOW)
    assert mimetype == "text/csv"
    assert filename == "critical-posts-2025-03-01.csv"
    lines = body.splitlines()
    assert lines[0] == '"ID","Source","Content","Hazard Type","Sentiment","Location","Created At","Risk Score"'
    assert len(lines) == 1 + len(POSTS)
    assert any(line.startswith('"1","Twitter"') for line in lines)
    assert '"HIGH"' in body and '"LOW"' in body


def test_export_txt_and_json_filters():
    body, mimetype, filename = export_posts(POSTS, fmt="txt", critical_only=True, now=NOW)
    assert mimetype == "text/plain"
    assert filename.endswith(".txt")
    assert body.count("=== POST") == 3
    assert "Risk: HIGH" in body
    assert "=== POST 3 ===" not in body

    body, mimetype, _ = export_posts(
        POSTS, fmt="json", hazard_type="flood", time_range="24h", include_location=False, now=NOW,
    )
    data = json.loads(body)
    assert mimetype == "application/json"
    assert data["total_posts"] == 2
    assert data["filters_applied"]["include_location"] is False
    assert all(p["location"] is None for p in data["posts"])
    assert {p["id"] for p in data["posts"]} == {1, 4}

    with pytest.raises(ValidationError):
        export_posts(POSTS, fmt="xml")
    with pytest.raises(ValidationError):
        export_posts(POSTS, sentiment="angry")


TWITTER_PAYLOAD = {
    "data": [
        {"id": "101", "text": "Huge waves crashing over the promenade in Chennai, evacuate now",
         "author_id": "u1", "created_at": "2025-03-01T10:00:00.000Z", "lang": "en",
         "public_metrics": {"retweet_count": 4}},
        {"id": "102", "text": "Tsunami drill at the school today", "author_id": "ghost",
         "created_at": "2025-03-01T09:00:00.000Z", "lang": "en"},
    ],
    "includes": {"users": [{"id": "u1", "username": "coastwatcher", "name": "Coast Watcher"}]},
    "meta": {"result_count": 2, "next_token": "abc"},
}


@pytest.fixture
def fake_twitter(monkeypatch):
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append({"url": url, "params": params, "headers": headers})
        return FakeResponse(TWITTER_PAYLOAD)

    monkeypatch.setattr(requests, "get", fake_get)
    return calls


def test_search_tweets_endpoint(client, fake_twitter):
    resp = client.get("/api/social/search?q=flood&max_results=500&next_token=tok")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["meta"]["next_token"] == "abc"
    assert body["tweets"][0]["author"]["username"] == "coastwatcher"
    assert body["tweets"][1]["author"] is None
    assert body["tweets"][0]["metrics"] == {"retweet_count": 4}

    params = fake_twitter[0]["params"]
    assert params["max_results"] == "100"
    assert params["pagination_token"] == "tok"
    assert fake_twitter[0]["headers"]["Authorization"] == "Bearer twitter-test"

    client.get("/api/social/search?q=flood&max_results=3")
    assert fake_twitter[1]["params"]["max_results"] == "10"

    client.get("/api/social/search?q=" + "x" * 600)
    assert len(fake_twitter[2]["params"]["query"]) == 500


def test_search_tweets_errors(app, client, fake_twitter):
    assert client.get("/api/social/search").status_code == 400
    assert client.get("/api/social/search?q=flood&max_results=lots").status_code == 400
    assert fake_twitter == []

    app.config["TWITTER_BEARER_TOKEN"] = None
    assert client.get("/api/social/tweets").status_code == 503


def test_default_tweet_feed(client, fake_twitter):
    tweets = client.get("/api/social/tweets").get_json()
    assert [t["id"] for t in tweets] == ["101", "102"]
    assert "-is:retweet" in fake_twitter[0]["params"]["query"]


def test_ingest_skips_known_tweets(citizen, analyst, client, fake_twitter):
    assert citizen.post("/api/social/ingest").status_code == 403

    first = analyst.post("/api/social/ingest", json={"q": "waves"}).get_json()
    assert first["stored"] == 2
    stored = {p["external_id"]: p for p in first["posts"]}
    assert stored["101"]["hazard_type"] == "high_waves"
    assert stored["101"]["sentiment"] == "negative"
    assert stored["101"]["location_name"] == "Chennai"
    assert stored["101"]["created_at"] == "2025-03-01T10:00:00"

    second = analyst.post("/api/social/ingest", json={"q": "waves"}).get_json()
    assert second["stored"] == 0
    assert second["skipped"] == 2
    assert len(client.get("/api/social/posts").get_json()) == 2


def test_post_crud_is_staff_only(citizen, analyst, client):
    payload = {"source": "Facebook", "content": "Storm surge reaching Kochi harbour, evacuate now"}
    assert citizen.post("/api/social/posts", json=payload).status_code == 403
    assert analyst.post("/api/social/posts", json={"source": "Facebook"}).status_code == 400
    assert analyst.post("/api/social/posts", json={**payload, "sentiment": "angry"}).status_code == 400

    auto = analyst.post("/api/social/posts", json=payload).get_json()
    assert auto["hazard_type"] == "storm_surge"
    assert auto["sentiment"] == "negative"

    manual = analyst.post("/api/social/posts", json={
        **payload, "hazard_type": "flood", "location_name": "Kochi", "latitude": 9.93, "longitude": 76.27,
    }).get_json()
    assert manual["hazard_type"] == "flood"

    assert len(client.get("/api/social/posts?source=facebook").get_json()) == 2
    assert len(client.get("/api/social/posts?hazard_type=flood").get_json()) == 1
    assert client.get("/api/social/posts?sentiment=angry").status_code == 400

    assert citizen.delete(f"/api/social/posts/{auto['id']}").status_code == 403
    assert analyst.delete(f"/api/social/posts/{auto['id']}").status_code == 200
    assert analyst.delete(f"/api/social/posts/{auto['id']}").status_code == 404


def test_summary_heatmap_and_export_endpoints(analyst, client):
    analyst.post("/api/social/posts", json={
        "source": "Twitter", "content": "Flood warning for Chennai, evacuate", "location_name": "Chennai",
    })
    analyst.post("/api/social/posts", json={"source": "Twitter", "content": "Lovely morning"})

    summary = client.get("/api/social/summary").get_json()
    assert summary["summary"]["risk_percentage"] == 50
    assert summary["summary"]["alert_level"] == "MEDIUM"

    points = client.get("/api/social/heatmap").get_json()["heatmap_points"]
    assert [p["location"] for p in points] == ["chennai"]
    assert client.get("/api/social/heatmap?metric=volume").status_code == 400

    resp = client.get("/api/social/export?format=csv&critical_only=true")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    disposition = resp.headers["Content-Disposition"]
    assert disposition.startswith("attachment; filename=critical-posts-")
    assert disposition.endswith(".csv")
    assert len(resp.get_data(as_text=True).splitlines()) == 2

    assert client.get("/api/social/export?format=xml").status_code == 400


def test_time_filters_accept_mixed_timestamp_shapes():
    # ingested tweets carry whole seconds, hand-entered posts carry microseconds
    now = datetime(2025, 1, 1, 12, 0)
    posts = [
        {**_post(1, "flood in Chennai", "flood", "negative", "Chennai"), "created_at": "2025-01-01T11:30:00.123456"},
        {**_post(2, "waves in Chennai", "high_waves", "negative", "Chennai"), "created_at": "2025-01-01T11:00:00"},
    ]
    for ordered in (posts, posts[::-1]):
        out = heatmap(ordered, time_range="24h", now=now)
        assert out["summary"]["total_posts"] == 2

        body, _, _ = export_posts(ordered, fmt="json", time_range="1h", now=now)
        assert {p["id"] for p in json.loads(body)["posts"]} == {1, 2}
        assert all(p["created_at"] is not None for p in json.loads(body)["posts"])


def test_ingested_and_manual_posts_share_the_heatmap_window(analyst, client, monkeypatch):
    tweeted = (datetime.utcnow() - timedelta(minutes=30)).strftime("%Y-%m-%dT%H:%M:%S.000Z")
    payload = {"data": [{"id": "201", "text": "Flooding near Chennai harbour, evacuate", "created_at": tweeted}]}
    monkeypatch.setattr(requests, "get", lambda *a, **kw: FakeResponse(payload))

    assert analyst.post("/api/social/ingest").get_json()["stored"] == 1
    analyst.post("/api/social/posts", json={
        "source": "Facebook", "content": "Flood warning in Chennai", "location_name": "Chennai",
    })

    points = client.get("/api/social/heatmap?time_range=24h").get_json()["heatmap_points"]
    assert [(p["location"], p["count"]) for p in points] == [("chennai", 2)]
