# coastal_watch/services/predictions.py
import logging
from typing import Dict, Any, Optional

from coastal_watch.database import db
from coastal_watch.constants import INDIAN_COASTAL_LOCATIONS
from coastal_watch.models import Prediction, PredictionAlert
from coastal_watch.services.risk_predictor import predict_location

logger = logging.getLogger(__name__)

_PREDICTION_FIELDS = (
    "risk_level", "risk_score", "location_name", "prediction_timeframe",
    "confidence_score", "status",
)


def save_prediction(data: Dict[str, Any]) -> Prediction:
    """Insert or update the prediction keyed on (latitude, longitude, hazard_type)."""
    pred = Prediction.query.filter_by(
        latitude=data["latitude"], longitude=data["longitude"], hazard_type=data["hazard_type"],
    ).first()
    if pred is None:
        pred = Prediction(
            latitude=data["latitude"], longitude=data["longitude"], hazard_type=data["hazard_type"],
        )
        db.session.add(pred)
    else:
        # a fresh run re-opens a resolved prediction
        pred.resolved_at = None
        pred.actual_outcome = None

    for field in _PREDICTION_FIELDS:
        if field in data:
            setattr(pred, field, data[field])
    pred.factors = data.get("factors")
    db.session.flush()
    return pred


def save_alert(prediction: Prediction, data: Dict[str, Any]) -> PredictionAlert:
    alert = PredictionAlert(
        prediction_id=prediction.id,
        alert_level=data["alert_level"],
        message=data["message"],
        affected_population=data.get("affected_population"),
        is_active=data.get("is_active", True),
    )
    alert.recommended_actions = data.get("recommended_actions")
    db.session.add(alert)
    db.session.flush()
    return alert


def generate_for_location(latitude, longitude, location_name=None, persist=True, rng=None) -> Dict[str, Any]:
    result = predict_location(latitude, longitude, location_name, rng=rng)
    if not persist:
        return result

    saved_preds, saved_alerts = [], []
    for p in result["predictions"]:
        pred = save_prediction(p)
        saved_preds.append(pred)
        for a in result["alerts"]:
            saved_alerts.append(save_alert(pred, a))
    db.session.commit()

    return {
        "predictions": [p.to_dict() for p in saved_preds],
        "alerts": [a.to_dict() for a in saved_alerts],
    }


def generate_all(locations=None, rng=None) -> Dict[str, Any]:
    """Run the model for every monitored coastal location; failures are logged and skipped."""
    locations = locations or INDIAN_COASTAL_LOCATIONS
    n_preds = 0
    n_alerts = 0
    failed = []

    for name, lat, lng in locations:
        try:
            out = generate_for_location(lat, lng, name, persist=True, rng=rng)
        except Exception as e:
            db.session.rollback()
            logger.warning("Failed to process %s: %s", name, e)
            failed.append(name)
            continue
        n_preds += len(out["predictions"])
        n_alerts += len(out["alerts"])

    logger.info("Batch prediction run: %d predictions, %d alerts, %d failures", n_preds, n_alerts, len(failed))
    return {
        "success": True,
        "message": f"Generated predictions for {n_preds} locations, created {n_alerts} alerts",
        "predictions_generated": n_preds,
        "alerts_generated": n_alerts,
        "failed_locations": failed,
    }


def prediction_analytics(limit: Optional[int] = 10) -> Dict[str, Any]:
    latest = Prediction.query.order_by(Prediction.created_at.desc()).limit(limit).all()
    trend = [
        {
            "location": p.location_name or f"Location {i + 1}",
            "risk": p.risk_score,
            "confidence": p.confidence_score,
        }
        for i, p in enumerate(latest)
    ]

    rows = (
        db.session.query(Prediction.risk_level, db.func.count(Prediction.id))
        .group_by(Prediction.risk_level)
        .all()
    )
    distribution = [{"level": level, "count": int(count)} for level, count in rows]
    return {"risk_trend": trend, "risk_distribution": distribution}
