# coastal_watch/models/report.py
from coastal_watch.database import db
from datetime import datetime
from coastal_watch.constants import URGENT_HAZARDS


def _iso(value):
    return value.isoformat() if value else None


class Report(db.Model):
    __tablename__ = "reports"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    hazard_type = db.Column(db.String(32), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    media_url = db.Column(db.String(500))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    location_name = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def urgency(self, now=None):
        """Triage priority: urgent hazards or < 2h old are high, < 12h medium."""
        now = now or datetime.utcnow()
        age_hours = (now - (self.created_at or now)).total_seconds() / 3600
        if self.hazard_type in URGENT_HAZARDS or age_hours < 2:
            return "high"
        if age_hours < 12:
            return "medium"
        return "low"

    def to_dict(self):
        profile = self.reporter.profile if self.reporter else None
        return {
            "id": self.id,
            "user_id": self.user_id,
            "hazard_type": self.hazard_type,
            "description": self.description,
            "media_url": self.media_url,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "location_name": self.location_name,
            "status": self.status,
            "verified_by": self.verified_by,
            "verified_at": _iso(self.verified_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "urgency": self.urgency(),
            "profiles": {"name": profile.name, "role": profile.role} if profile else None,
        }
