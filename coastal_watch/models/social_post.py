# coastal_watch/models/social_post.py
from coastal_watch.database import db
from datetime import datetime


class SocialMediaPost(db.Model):
    __tablename__ = "social_media_posts"
    id = db.Column(db.Integer, primary_key=True)
    source = db.Column(db.String(64), nullable=False)
    content = db.Column(db.Text, nullable=False)
    hazard_type = db.Column(db.String(32), nullable=True, index=True)
    sentiment = db.Column(db.String(16), nullable=False, default="neutral")
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    location_name = db.Column(db.String(255))
    # tweet id for ingested posts
    external_id = db.Column(db.String(64), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "source": self.source,
            "content": self.content,
            "hazard_type": self.hazard_type,
            "sentiment": self.sentiment,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "location_name": self.location_name,
            "external_id": self.external_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
