# coastal_watch/api.py
import math
import logging
from datetime import datetime, timedelta

from flask import (
    Blueprint, request, jsonify, session, current_app,
    send_from_directory, Response
)

from coastal_watch.database import db
from coastal_watch.auth import current_user, login_required, roles_required
from coastal_watch.constants import (
    ROLES, STAFF_ROLES, HAZARD_TYPES, REPORT_STATUSES, SENTIMENTS,
    RISK_LEVELS, PREDICTION_STATUSES, PREDICTION_TIMEFRAMES,
)
from coastal_watch.models import (
    User, Profile, Report, SocialMediaPost, Prediction, PredictionAlert, WeatherRecord
)

# Services
from coastal_watch.services import ServiceError, ValidationError
from coastal_watch.services import social_analytics
from coastal_watch.services.alert_zones import cluster_reports
from coastal_watch.services.forecaster import gemini_forecast, ocean_forecast
from coastal_watch.services.media_store import save_media
from coastal_watch.services.predictions import (
    generate_for_location, generate_all, save_prediction, prediction_analytics
)
from coastal_watch.services.social_feed import ingest_tweets
from coastal_watch.services.twitter_client import search_tweets, fetch_tweets
from coastal_watch.services.weather_client import get_current_weather

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------
# SETUP
# ---------------------------------------------------------------
api = Blueprint("api", __name__)


@api.errorhandler(ServiceError)
def handle_service_error(e):
    body = {"error": e.code, "detail": str(e)}
    if e.detail is not None:
        body["upstream"] = e.detail
    if getattr(e, "upstream_status", None):
        body["upstream_status"] = e.upstream_status
    return jsonify(body), e.status


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def _float(value, name, lo=None, hi=None, required=True):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(num):
        raise ValidationError(f"{name} must be a finite number")
    if (lo is not None and num < lo) or (hi is not None and num > hi):
        raise ValidationError(f"{name} must be between {lo} and {hi}")
    return num


def _int(value, name, default):
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def _flag(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _choice(value, name, allowed, allow_all=False):
    if allow_all and value in (None, "", "all"):
        return None
    if value not in allowed:
        raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")
    return value


def _not_found(what):
    return jsonify({"error": f"{what}_not_found"}), 404


# ---------------------------------------------------------------
# HEALTH
# ---------------------------------------------------------------
@api.route("/")
def health():
    return jsonify({
        "status": "ok",
        "app": "coastal_watch",
        "integrations": {
            "openweather": bool(current_app.config.get("OPENWEATHER_API_KEY")),
            "gemini": bool(current_app.config.get("GEMINI_API_KEY")),
            "mistral": bool(current_app.config.get("MISTRAL_API_KEY")),
            "twitter": bool(current_app.config.get("TWITTER_BEARER_TOKEN")),
        },
    })


# ---------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------
@api.route("/api/register", methods=["POST"])
def api_register():
    data = _payload()

    email = (data.get("email") or "").strip().lower()
    password = data.get("password")
    name = (data.get("name") or "").strip() or email
    role = data.get("role") or "citizen"

    if not email or not password:
        return jsonify({"error": "Email & password required"}), 400
    if role not in ROLES:
        return jsonify({"error": f"Unknown role: {role}"}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already exists"}), 400

    user = User(email=email)
    user.set_password(password)
    user.profile = Profile(name=name, role=role)
    db.session.add(user)
    db.session.commit()

    session["user_id"] = user.id
    logger.info("Registered user %s as %s", user.id, role)
    return jsonify({"message": "registered", "user_id": user.id, "profile": user.profile.to_dict()}), 201


@api.route("/api/login", methods=["POST"])
def api_login():
    data = _payload()

    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    session["user_id"] = user.id
    return jsonify({"message": "login_success", "user_id": user.id, "profile": user.profile.to_dict()})


@api.route("/api/logout", methods=["POST"])
def api_logout():
    session.clear()
    return jsonify({"message": "logged_out"})


# ---------------------------------------------------------------
# PROFILE & USERS
# ---------------------------------------------------------------
@api.route("/api/profile", methods=["GET"])
@login_required
def get_profile():
    return jsonify(current_user().profile.to_dict())


@api.route("/api/profile", methods=["PATCH"])
@login_required
def update_profile():
    data = _payload()
    name = (data.get("name") or "").strip()
    if not name:
        return jsonify({"error": "Name required"}), 400

    profile = current_user().profile
    profile.name = name
    profile.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify(profile.to_dict())


@api.route("/api/users")
@roles_required(*STAFF_ROLES)
def list_users():
    profiles = Profile.query.order_by(Profile.created_at.desc()).all()
    return jsonify([p.to_dict() for p in profiles])


@api.route("/api/users/<int:user_id>/role", methods=["PATCH"])
@roles_required("disaster_manager")
def set_user_role(user_id):
    role = _choice(_payload().get("role"), "role", ROLES)
    profile = Profile.query.filter_by(user_id=user_id).first()
    if profile is None:
        return _not_found("user")

    profile.role = role
    db.session.commit()
    logger.info("User %s set role of %s to %s", current_user().id, user_id, role)
    return jsonify(profile.to_dict())


# ---------------------------------------------------------------
# REPORTS
# ---------------------------------------------------------------
@api.route("/api/reports", methods=["POST"])
@login_required
def submit_report():
    data = _payload()
    hazard_type = _choice(data.get("hazard_type"), "hazard_type", HAZARD_TYPES)
    description = (data.get("description") or "").strip()
    if not description:
        raise ValidationError("description is required")
    latitude = _float(data.get("latitude"), "latitude", -90, 90)
    longitude = _float(data.get("longitude"), "longitude", -180, 180)

    user = current_user()
    media_url = None
    if "file" in request.files:
        media_url = save_media(request.files["file"], user.id)

    report = Report(
        user_id=user.id,
        hazard_type=hazard_type,
        description=description,
        latitude=latitude,
        longitude=longitude,
        location_name=(data.get("location_name") or "").strip() or None,
        media_url=media_url,
    )
    db.session.add(report)
    db.session.commit()

    logger.info("Report %s submitted by user %s (%s)", report.id, user.id, hazard_type)
    return jsonify(report.to_dict()), 201


def _filtered_reports():
    hazard_type = _choice(request.args.get("hazard_type"), "hazard_type", HAZARD_TYPES, allow_all=True)
    status = _choice(request.args.get("status"), "status", REPORT_STATUSES, allow_all=True)

    q = Report.query
    if hazard_type:
        q = q.filter_by(hazard_type=hazard_type)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Report.created_at.desc(), Report.id.desc())


@api.route("/api/reports", methods=["GET"])
def list_reports():
    return jsonify([r.to_dict() for r in _filtered_reports().all()])


@api.route("/api/reports/geojson")
def reports_geojson():
    features = []
    for r in _filtered_reports().all():
        props = r.to_dict()
        props.pop("latitude")
        props.pop("longitude")
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [r.longitude, r.latitude]},
            "properties": props,
        })
    return jsonify({"type": "FeatureCollection", "features": features})


@api.route("/api/reports/<int:report_id>", methods=["GET"])
def get_report(report_id):
    report = db.session.get(Report, report_id)
    if report is None:
        return _not_found("report")
    return jsonify(report.to_dict())


@api.route("/api/reports/<int:report_id>", methods=["PATCH"])
@login_required
def update_report(report_id):
    report = db.session.get(Report, report_id)
    if report is None:
        return _not_found("report")
    if report.user_id != current_user().id:
        return jsonify({"error": "forbidden"}), 403
    if report.status != "pending":
        return jsonify({"error": "Only pending reports can be edited"}), 409

    data = _payload()
    if "hazard_type" in data:
        report.hazard_type = _choice(data["hazard_type"], "hazard_type", HAZARD_TYPES)
    if "description" in data:
        description = (data["description"] or "").strip()
        if not description:
            raise ValidationError("description cannot be empty")
        report.description = description
    if "location_name" in data:
        report.location_name = (data["location_name"] or "").strip() or None
    db.session.commit()
    return jsonify(report.to_dict())


@api.route("/api/reports/<int:report_id>/verify", methods=["POST"])
@roles_required(*STAFF_ROLES)
def verify_report(report_id):
    status = _choice(_payload().get("status"), "status", ("verified", "rejected"))
    report = db.session.get(Report, report_id)
    if report is None:
        return _not_found("report")

    report.status = status
    report.verified_by = current_user().id
    report.verified_at = datetime.utcnow()
    db.session.commit()

    logger.info("Report %s %s by user %s", report.id, status, current_user().id)
    return jsonify({"message": f"Report has been {status}", "report": report.to_dict()})


@api.route("/media/<int:user_id>/<path:filename>")
def media(user_id, filename):
    return send_from_directory(f"{current_app.config['UPLOAD_FOLDER']}/{user_id}", filename)


# ---------------------------------------------------------------
# ALERT ZONES
# ---------------------------------------------------------------
@api.route("/api/alert-zones")
def alert_zones():
    radius_km = _float(request.args.get("radius_km"), "radius_km", required=False)
    if radius_km is None:
        radius_km = current_app.config["ALERT_ZONE_RADIUS_KM"]
    min_reports = _int(request.args.get("min_reports"), "min_reports", 2)
    hazard_type = _choice(request.args.get("hazard_type"), "hazard_type", HAZARD_TYPES, allow_all=True)

    q = Report.query.filter_by(status="verified")
    if hazard_type:
        q = q.filter_by(hazard_type=hazard_type)
    reports = [r.to_dict() for r in q.order_by(Report.created_at).all()]

    zones = cluster_reports(reports, radius_km=radius_km, min_reports=min_reports)
    return jsonify({"radius_km": radius_km, "min_reports": min_reports, "zones": zones})


# ---------------------------------------------------------------
# DASHBOARD
# ---------------------------------------------------------------
@api.route("/api/dashboard")
@roles_required(*STAFF_ROLES)
def dashboard():
    since = datetime.utcnow() - timedelta(hours=24)
    return jsonify({
        "pendingReports": Report.query.filter_by(status="pending").count(),
        "verifiedReports": Report.query.filter_by(status="verified").count(),
        "rejectedReports": Report.query.filter_by(status="rejected").count(),
        "totalUsers": Profile.query.count(),
        "recentAlerts": Report.query.filter(Report.created_at >= since).count(),
        "socialMediaAlerts": SocialMediaPost.query.filter(SocialMediaPost.hazard_type.isnot(None)).count(),
        "activePredictionAlerts": PredictionAlert.query.filter_by(is_active=True).count(),
    })


@api.route("/api/activity")
def recent_activity():
    limit = min(max(_int(request.args.get("limit"), "limit", 5), 1), 50)
    reports = Report.query.order_by(Report.created_at.desc(), Report.id.desc()).limit(limit).all()
    return jsonify([r.to_dict() for r in reports])


# ---------------------------------------------------------------
# WEATHER
# ---------------------------------------------------------------
@api.route("/api/weather")
def weather():
    lat = _float(request.args.get("lat"), "lat", -90, 90)
    lon = _float(request.args.get("lon"), "lon", -180, 180)

    data = get_current_weather(lat, lon)
    db.session.add(WeatherRecord(
        latitude=lat,
        longitude=lon,
        temperature=data["temperature"],
        humidity=data["humidity"],
        wind_speed=data["wind_speed"],
        wind_direction=data["wind_direction"],
        pressure=data["pressure"],
        precipitation=data["precipitation"],
        visibility=data["visibility"],
    ))
    db.session.commit()
    return jsonify(data)


@api.route("/api/weather/history")
def weather_history():
    limit = min(max(_int(request.args.get("limit"), "limit", 50), 1), 500)
    q = WeatherRecord.query
    lat = _float(request.args.get("lat"), "lat", -90, 90, required=False)
    lon = _float(request.args.get("lon"), "lon", -180, 180, required=False)
    if lat is not None and lon is not None:
        q = q.filter_by(latitude=lat, longitude=lon)
    records = q.order_by(WeatherRecord.timestamp.desc(), WeatherRecord.id.desc()).limit(limit).all()
    return jsonify([w.to_dict() for w in records])


# ---------------------------------------------------------------
# AI FORECASTS
# ---------------------------------------------------------------
@api.route("/api/forecast/gemini", methods=["POST"])
def forecast_gemini():
    data = _payload()
    return jsonify(gemini_forecast(data.get("weatherData")))


@api.route("/api/forecast/ocean", methods=["POST"])
def forecast_ocean():
    data = _payload()
    lat = _float(data.get("latitude"), "latitude", -90, 90)
    lon = _float(data.get("longitude"), "longitude", -180, 180)
    return jsonify(ocean_forecast(lat, lon))


# ---------------------------------------------------------------
# PREDICTIONS
# ---------------------------------------------------------------
@api.route("/api/predictions/generate", methods=["POST"])
def predictions_generate():
    data = _payload()
    lat = _float(data.get("latitude"), "latitude", -90, 90)
    lon = _float(data.get("longitude"), "longitude", -180, 180)
    location_name = (data.get("location_name") or "").strip() or None
    persist = _flag(data.get("persist"))

    if persist:
        user = current_user()
        if user is None:
            return jsonify({"error": "not_logged_in"}), 401
        if user.profile.role not in STAFF_ROLES:
            return jsonify({"error": "forbidden"}), 403

    result = generate_for_location(lat, lon, location_name, persist=persist)
    result["timestamp"] = datetime.utcnow().isoformat()
    return jsonify(result)


@api.route("/api/predictions/generate-all", methods=["POST"])
@roles_required(*STAFF_ROLES)
def predictions_generate_all():
    return jsonify(generate_all())


@api.route("/api/predictions", methods=["GET"])
def list_predictions():
    hazard_type = _choice(request.args.get("hazard_type"), "hazard_type", HAZARD_TYPES, allow_all=True)
    risk_level = _choice(request.args.get("risk_level"), "risk_level", RISK_LEVELS, allow_all=True)
    status = _choice(request.args.get("status"), "status", PREDICTION_STATUSES, allow_all=True)

    q = Prediction.query
    if hazard_type:
        q = q.filter_by(hazard_type=hazard_type)
    if risk_level:
        q = q.filter_by(risk_level=risk_level)
    if status:
        q = q.filter_by(status=status)
    preds = q.order_by(Prediction.created_at.desc(), Prediction.id.desc()).all()
    return jsonify([p.to_dict() for p in preds])


@api.route("/api/predictions", methods=["POST"])
@roles_required(*STAFF_ROLES)
def create_prediction():
    data = _payload()
    factors = data.get("factors") or {}
    if not isinstance(factors, dict):
        raise ValidationError("factors must be an object")

    pred = save_prediction({
        "hazard_type": _choice(data.get("hazard_type"), "hazard_type", HAZARD_TYPES),
        "risk_level": _choice(data.get("risk_level", "low"), "risk_level", RISK_LEVELS),
        "risk_score": _float(data.get("risk_score", 0), "risk_score", 0, 100),
        "latitude": _float(data.get("latitude"), "latitude", -90, 90),
        "longitude": _float(data.get("longitude"), "longitude", -180, 180),
        "location_name": data.get("location_name"),
        "prediction_timeframe": _choice(
            data.get("prediction_timeframe", "24h"), "prediction_timeframe", PREDICTION_TIMEFRAMES
        ),
        "confidence_score": _float(data.get("confidence_score", 0), "confidence_score", 0, 100),
        "factors": factors,
        "status": "active",
    })
    db.session.commit()
    return jsonify(pred.to_dict()), 201


@api.route("/api/predictions/<int:prediction_id>/resolve", methods=["POST"])
@roles_required(*STAFF_ROLES)
def resolve_prediction(prediction_id):
    data = _payload()
    status = _choice(data.get("status", "resolved"), "status", ("resolved", "false_positive"))
    pred = db.session.get(Prediction, prediction_id)
    if pred is None:
        return _not_found("prediction")

    pred.status = status
    pred.resolved_at = datetime.utcnow()
    pred.actual_outcome = data.get("actual_outcome")
    for alert in pred.alerts.filter_by(is_active=True):
        alert.is_active = False
    db.session.commit()
    return jsonify(pred.to_dict())


@api.route("/api/predictions/analytics")
def predictions_analytics():
    return jsonify(prediction_analytics())


# ---------------------------------------------------------------
# PREDICTION ALERTS
# ---------------------------------------------------------------
@api.route("/api/alerts")
def list_alerts():
    q = PredictionAlert.query
    if _flag(request.args.get("active_only"), default=True):
        q = q.filter_by(is_active=True)
    alerts = q.order_by(PredictionAlert.created_at.desc(), PredictionAlert.id.desc()).all()
    return jsonify([a.to_dict() for a in alerts])


@api.route("/api/alerts/<int:alert_id>/acknowledge", methods=["POST"])
@roles_required(*STAFF_ROLES)
def acknowledge_alert(alert_id):
    alert = db.session.get(PredictionAlert, alert_id)
    if alert is None:
        return _not_found("alert")

    alert.acknowledged_at = datetime.utcnow()
    alert.acknowledged_by = current_user().id
    alert.is_active = False
    db.session.commit()

    logger.info("Alert %s acknowledged by user %s", alert.id, current_user().id)
    return jsonify(alert.to_dict())


# ---------------------------------------------------------------
# SOCIAL MEDIA
# ---------------------------------------------------------------
@api.route("/api/social/tweets")
def social_tweets():
    return jsonify(fetch_tweets())


@api.route("/api/social/search")
def social_search():
    return jsonify(search_tweets(
        request.args.get("q"),
        max_results=request.args.get("max_results", 10),
        next_token=request.args.get("next_token"),
    ))


@api.route("/api/social/ingest", methods=["POST"])
@roles_required(*STAFF_ROLES)
def social_ingest():
    data = _payload()
    return jsonify(ingest_tweets(data.get("q"), max_results=_int(data.get("max_results"), "max_results", 50)))


def _all_posts():
    return [p.to_dict() for p in SocialMediaPost.query.order_by(SocialMediaPost.created_at.desc()).all()]


@api.route("/api/social/posts", methods=["GET"])
def list_posts():
    hazard_type = _choice(request.args.get("hazard_type"), "hazard_type", HAZARD_TYPES, allow_all=True)
    sentiment = _choice(request.args.get("sentiment"), "sentiment", SENTIMENTS, allow_all=True)
    source = request.args.get("source")

    q = SocialMediaPost.query
    if hazard_type:
        q = q.filter_by(hazard_type=hazard_type)
    if sentiment:
        q = q.filter_by(sentiment=sentiment)
    if source:
        q = q.filter(db.func.lower(SocialMediaPost.source) == source.lower())
    posts = q.order_by(SocialMediaPost.created_at.desc(), SocialMediaPost.id.desc()).all()
    return jsonify([p.to_dict() for p in posts])


@api.route("/api/social/posts", methods=["POST"])
@roles_required(*STAFF_ROLES)
def create_post():
    data = _payload()
    content = (data.get("content") or "").strip()
    source = (data.get("source") or "").strip()
    if not content or not source:
        raise ValidationError("source and content are required")

    hazard, sentiment = social_analytics.classify_post(content)
    if data.get("hazard_type"):
        hazard = _choice(data["hazard_type"], "hazard_type", HAZARD_TYPES)
    if data.get("sentiment"):
        sentiment = _choice(data["sentiment"], "sentiment", SENTIMENTS)

    post = SocialMediaPost(
        source=source,
        content=content,
        hazard_type=hazard,
        sentiment=sentiment,
        latitude=_float(data.get("latitude"), "latitude", -90, 90, required=False),
        longitude=_float(data.get("longitude"), "longitude", -180, 180, required=False),
        location_name=(data.get("location_name") or "").strip() or None,
    )
    db.session.add(post)
    db.session.commit()
    return jsonify(post.to_dict()), 201


@api.route("/api/social/posts/<int:post_id>", methods=["DELETE"])
@roles_required(*STAFF_ROLES)
def delete_post(post_id):
    post = db.session.get(SocialMediaPost, post_id)
    if post is None:
        return _not_found("post")
    db.session.delete(post)
    db.session.commit()
    return jsonify({"message": "deleted", "id": post_id})


@api.route("/api/social/summary")
def social_summary():
    return jsonify(social_analytics.alert_summary(_all_posts()))


@api.route("/api/social/heatmap")
def social_heatmap():
    return jsonify(social_analytics.heatmap(
        _all_posts(),
        hazard_type=request.args.get("hazard_type", "all"),
        time_range=request.args.get("time_range", "24h"),
        metric=request.args.get("metric", "count"),
    ))


@api.route("/api/social/export")
def social_export():
    body, mimetype, filename = social_analytics.export_posts(
        _all_posts(),
        fmt=request.args.get("format", "json"),
        hazard_type=request.args.get("hazard_type", "all"),
        sentiment=request.args.get("sentiment", "all"),
        time_range=request.args.get("time_range", "all"),
        critical_only=_flag(request.args.get("critical_only")),
        include_location=_flag(request.args.get("include_location"), default=True),
    )
    return Response(
        body, mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
