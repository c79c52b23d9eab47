# create_db.py
from coastal_watch import create_app
from coastal_watch.database import db
from coastal_watch.models import SocialMediaPost, Prediction, PredictionAlert

DEMO_POSTS = [
    ("Twitter", "Huge waves hitting the coastline near Miami Beach! Stay safe everyone #tsunami #alert",
     "high_waves", "negative", 25.7617, -80.1918, "Miami Beach, FL"),
    ("Instagram", "Beautiful sunset over calm waters at Santa Monica",
     None, "positive", 34.0195, -118.4912, "Santa Monica, CA"),
    ("Facebook", "Water levels rising rapidly in downtown area. Emergency services on scene",
     "flood", "negative", 40.7128, -74.0060, "New York, NY"),
    ("Twitter", "Storm surge warning issued for coastal areas. Please evacuate if advised #stormsurge",
     "storm_surge", "negative", 29.7604, -95.3698, "Houston, TX"),
    ("Instagram", "The ocean is acting really strange today, never seen currents like this",
     "abnormal_sea_behavior", "neutral", 37.7749, -122.4194, "San Francisco, CA"),
]

DEMO_PREDICTIONS = [
    ("tsunami", "high", 78.5, 13.0827, 80.2707, "Chennai Coast", "24h", 85.2,
     {"seismic_activity": 0.8, "weather_conditions": 0.6, "historical_data": 0.7, "ocean_current": 0.9}),
    ("flood", "medium", 45.2, 22.5726, 88.3639, "Kolkata Coastal Area", "72h", 72.1,
     {"rainfall": 0.6, "river_level": 0.4, "tide_level": 0.5}),
    ("storm_surge", "critical", 92.3, 19.0760, 72.8777, "Mumbai Coast", "6h", 88.7,
     {"wind_speed": 0.95, "pressure_system": 0.9, "storm_track": 0.95}),
]

DEMO_ALERTS = {
    "tsunami": ("high", "High tsunami risk detected. Prepare evacuation procedures.", 2500000,
                ["Activate emergency response teams", "Prepare evacuation routes", "Monitor sea level sensors"]),
    "storm_surge": ("critical", "Critical storm surge risk. Immediate evacuation required.", 18000000,
                    ["Issue immediate evacuation orders", "Activate emergency shelters", "Deploy rescue teams"]),
}


def seed():
    for source, content, hazard, sentiment, lat, lng, place in DEMO_POSTS:
        db.session.add(SocialMediaPost(
            source=source, content=content, hazard_type=hazard, sentiment=sentiment,
            latitude=lat, longitude=lng, location_name=place,
        ))

    for hazard, level, score, lat, lng, place, timeframe, confidence, factors in DEMO_PREDICTIONS:
        pred = Prediction(
            hazard_type=hazard, risk_level=level, risk_score=score, latitude=lat, longitude=lng,
            location_name=place, prediction_timeframe=timeframe, confidence_score=confidence,
        )
        pred.factors = factors
        db.session.add(pred)
        db.session.flush()

        if hazard in DEMO_ALERTS:
            alert_level, message, population, actions = DEMO_ALERTS[hazard]
            alert = PredictionAlert(
                prediction_id=pred.id, alert_level=alert_level, message=message,
                affected_population=population,
            )
            alert.recommended_actions = actions
            db.session.add(alert)

    db.session.commit()


if __name__ == "__main__":
    app = create_app()

    with app.app_context():
        db.drop_all()
        db.create_all()
        seed()
        print("Database has been reset and seeded with demo data.")
