# coastal_watch/models/weather_record.py
from coastal_watch.database import db
from datetime import datetime


class WeatherRecord(db.Model):
    __tablename__ = "historical_weather"
    __table_args__ = (
        db.Index("idx_weather_location_time", "latitude", "longitude", "timestamp"),
    )
    id = db.Column(db.Integer, primary_key=True)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    temperature = db.Column(db.Float)
    humidity = db.Column(db.Float)
    wind_speed = db.Column(db.Float)
    wind_direction = db.Column(db.Float)
    pressure = db.Column(db.Float)
    precipitation = db.Column(db.Float, default=0.0)
    visibility = db.Column(db.Float)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "pressure": self.pressure,
            "precipitation": self.precipitation,
            "visibility": self.visibility,
        }
