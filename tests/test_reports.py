import io
from datetime import datetime, timedelta

from coastal_watch.database import db
from coastal_watch.models import Report

REPORT = {
    "hazard_type": "high_waves",
    "description": "Waves over the sea wall at Marina beach",
    "latitude": 13.05,
    "longitude": 80.28,
    "location_name": "Marina Beach",
}
FORM = {k: str(v) for k, v in REPORT.items()}


def test_submit_requires_login(client):
    assert client.post("/api/reports", json=REPORT).status_code == 401


def test_submit_validates_fields(citizen):
    assert citizen.post("/api/reports", json={**REPORT, "hazard_type": "volcano"}).status_code == 400
    assert citizen.post("/api/reports", json={**REPORT, "description": ""}).status_code == 400
    assert citizen.post("/api/reports", json={**REPORT, "latitude": 95}).status_code == 400
    assert citizen.post("/api/reports", json={**REPORT, "longitude": "east"}).status_code == 400


def test_submit_and_list(citizen, client):
    resp = citizen.post("/api/reports", json=REPORT)
    assert resp.status_code == 201
    report = resp.get_json()
    assert report["status"] == "pending"
    assert report["profiles"] == {"name": "Asha", "role": "citizen"}
    assert report["urgency"] == "high"

    listed = client.get("/api/reports").get_json()
    assert [r["id"] for r in listed] == [report["id"]]
    assert client.get("/api/reports?status=verified").get_json() == []
    assert client.get("/api/reports?status=bogus").status_code == 400
    assert client.get(f"/api/reports/{report['id']}").status_code == 200
    assert client.get("/api/reports/404").status_code == 404


def test_media_upload_is_stored_and_served(citizen):
    data = {**FORM, "file": (io.BytesIO(b"\xff\xd8fake-jpeg"), "wave photo.jpg")}
    resp = citizen.post("/api/reports", data=data, content_type="multipart/form-data")
    assert resp.status_code == 201
    media_url = resp.get_json()["media_url"]
    assert media_url.startswith(f"/media/{citizen.user_id}/")
    assert media_url.endswith(".jpg")

    served = citizen.get(media_url)
    assert served.status_code == 200
    assert served.data == b"\xff\xd8fake-jpeg"


def test_media_upload_rejects_bad_type_and_size(app, citizen):
    bad = {**FORM, "file": (io.BytesIO(b"MZ"), "payload.exe")}
    assert citizen.post("/api/reports", data=bad, content_type="multipart/form-data").status_code == 400

    app.config["MAX_MEDIA_BYTES"] = 4
    big = {**FORM, "file": (io.BytesIO(b"0123456789"), "big.png")}
    resp = citizen.post("/api/reports", data=big, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "too large" in resp.get_json()["detail"]


def test_verification_is_staff_only(citizen, analyst):
    report_id = citizen.post("/api/reports", json=REPORT).get_json()["id"]

    assert citizen.post(f"/api/reports/{report_id}/verify", json={"status": "verified"}).status_code == 403
    assert analyst.post(f"/api/reports/{report_id}/verify", json={"status": "maybe"}).status_code == 400

    resp = analyst.post(f"/api/reports/{report_id}/verify", json={"status": "verified"})
    assert resp.status_code == 200
    report = resp.get_json()["report"]
    assert report["status"] == "verified"
    assert report["verified_by"] == analyst.user_id
    assert report["verified_at"] is not None


def test_owner_can_edit_only_pending(citizen, analyst):
    report_id = citizen.post("/api/reports", json=REPORT).get_json()["id"]

    assert analyst.patch(f"/api/reports/{report_id}", json={"description": "x"}).status_code == 403

    resp = citizen.patch(f"/api/reports/{report_id}", json={"description": "Water crossing the road"})
    assert resp.status_code == 200
    assert resp.get_json()["description"] == "Water crossing the road"

    analyst.post(f"/api/reports/{report_id}/verify", json={"status": "rejected"})
    assert citizen.patch(f"/api/reports/{report_id}", json={"description": "late"}).status_code == 409


def test_geojson_uses_lng_lat_order(citizen, client):
    citizen.post("/api/reports", json=REPORT)
    fc = client.get("/api/reports/geojson").get_json()
    assert fc["type"] == "FeatureCollection"
    feature = fc["features"][0]
    assert feature["geometry"]["coordinates"] == [80.28, 13.05]
    assert "latitude" not in feature["properties"]


def test_urgency_levels():
    now = datetime(2025, 1, 1, 12, 0)
    assert Report(hazard_type="flood", created_at=now - timedelta(hours=1)).urgency(now) == "high"
    assert Report(hazard_type="flood", created_at=now - timedelta(hours=5)).urgency(now) == "medium"
    assert Report(hazard_type="flood", created_at=now - timedelta(hours=20)).urgency(now) == "low"
    assert Report(hazard_type="tsunami", created_at=now - timedelta(days=3)).urgency(now) == "high"


def test_dashboard_and_activity(app, citizen, analyst):
    first = citizen.post("/api/reports", json=REPORT).get_json()["id"]
    citizen.post("/api/reports", json={**REPORT, "hazard_type": "flood"})
    analyst.post(f"/api/reports/{first}/verify", json={"status": "verified"})

    with app.app_context():
        old = Report(
            user_id=citizen.user_id, hazard_type="flood", description="old",
            latitude=10, longitude=76, created_at=datetime.utcnow() - timedelta(days=2),
        )
        db.session.add(old)
        db.session.commit()

    assert citizen.get("/api/dashboard").status_code == 403
    stats = analyst.get("/api/dashboard").get_json()
    assert stats["pendingReports"] == 2
    assert stats["verifiedReports"] == 1
    assert stats["rejectedReports"] == 0
    assert stats["totalUsers"] == 2
    assert stats["recentAlerts"] == 2

    activity = citizen.get("/api/activity?limit=2").get_json()
    assert len(activity) == 2
    assert all(a["description"] != "old" for a in activity)


def test_media_upload_with_non_latin_filename(citizen):
    data = {**FORM, "file": (io.BytesIO(b"\xff\xd8wave"), "लहर.jpg")}
    resp = citizen.post("/api/reports", data=data, content_type="multipart/form-data")
    assert resp.status_code == 201
    assert resp.get_json()["media_url"].endswith(".jpg")

    dotted = {**FORM, "file": (io.BytesIO(b"\xff\xd8wave"), "..jpg")}
    assert citizen.post("/api/reports", data=dotted, content_type="multipart/form-data").status_code == 201


def test_non_finite_coordinates_are_rejected(citizen, analyst, client):
    for bad in ("nan", "inf", "-inf"):
        resp = citizen.post("/api/reports", json={**REPORT, "latitude": bad})
        assert resp.status_code == 400
        assert "finite" in resp.get_json()["detail"]
        assert citizen.post("/api/reports", json={**REPORT, "longitude": bad}).status_code == 400

    post = {"source": "Twitter", "content": "waves", "latitude": "nan", "longitude": 80.2}
    assert analyst.post("/api/social/posts", json=post).status_code == 400
    assert client.get("/api/weather?lat=nan&lon=80").status_code == 400
    assert client.get("/api/reports").get_json() == []


def test_non_object_json_body_is_rejected(citizen):
    resp = citizen.post("/api/reports", json=[REPORT])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_request"
    assert citizen.post("/api/forecast/gemini", json=["weatherData"]).status_code == 400
