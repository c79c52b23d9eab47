# coastal_watch/models/prediction_alert.py
import json
from coastal_watch.database import db
from datetime import datetime


class PredictionAlert(db.Model):
    __tablename__ = "prediction_alerts"
    id = db.Column(db.Integer, primary_key=True)
    prediction_id = db.Column(db.Integer, db.ForeignKey("predictions.id", ondelete="CASCADE"), nullable=False)
    alert_level = db.Column(db.String(16), nullable=False)
    message = db.Column(db.Text, nullable=False)
    affected_population = db.Column(db.Integer)
    recommended_actions_json = db.Column(db.Text)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    acknowledged_at = db.Column(db.DateTime, nullable=True)
    acknowledged_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @property
    def recommended_actions(self):
        return json.loads(self.recommended_actions_json) if self.recommended_actions_json else []

    @recommended_actions.setter
    def recommended_actions(self, value):
        self.recommended_actions_json = json.dumps(list(value or []))

    def to_dict(self):
        return {
            "id": self.id,
            "prediction_id": self.prediction_id,
            "alert_level": self.alert_level,
            "message": self.message,
            "affected_population": self.affected_population,
            "recommended_actions": self.recommended_actions,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "acknowledged_by": self.acknowledged_by,
        }
