# coastal_watch/models/__init__.py
# Imports every model module so the SQLAlchemy registry knows all tables.
from .user import User
from .profile import Profile
from .report import Report
from .social_post import SocialMediaPost
from .prediction import Prediction
from .prediction_alert import PredictionAlert
from .weather_record import WeatherRecord
