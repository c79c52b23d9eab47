# coastal_watch/models/prediction.py
import json
from coastal_watch.database import db
from datetime import datetime


def _iso(value):
    return value.isoformat() if value else None


class Prediction(db.Model):
    __tablename__ = "predictions"
    __table_args__ = (
        db.UniqueConstraint("latitude", "longitude", "hazard_type", name="uq_prediction_location_hazard"),
    )
    id = db.Column(db.Integer, primary_key=True)
    hazard_type = db.Column(db.String(32), nullable=False, index=True)
    risk_level = db.Column(db.String(16), nullable=False, default="low", index=True)
    risk_score = db.Column(db.Float, nullable=False, default=0.0)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    location_name = db.Column(db.String(255))
    prediction_timeframe = db.Column(db.String(8), nullable=False, default="24h")
    confidence_score = db.Column(db.Float, nullable=False, default=0.0)
    factors_json = db.Column(db.Text)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    resolved_at = db.Column(db.DateTime, nullable=True)
    actual_outcome = db.Column(db.Text, nullable=True)

    alerts = db.relationship(
        "PredictionAlert", backref="prediction", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def factors(self):
        return json.loads(self.factors_json) if self.factors_json else {}

    @factors.setter
    def factors(self, value):
        self.factors_json = json.dumps(value or {})

    def to_dict(self):
        return {
            "id": self.id,
            "hazard_type": self.hazard_type,
            "risk_level": self.risk_level,
            "risk_score": self.risk_score,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "location_name": self.location_name,
            "prediction_timeframe": self.prediction_timeframe,
            "confidence_score": self.confidence_score,
            "factors": self.factors,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "resolved_at": _iso(self.resolved_at),
            "actual_outcome": self.actual_outcome,
        }
