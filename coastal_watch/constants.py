# coastal_watch/constants.py
# Allowed values for the string "enum" columns.

ROLES = ("citizen", "analyst", "disaster_manager")
STAFF_ROLES = ("analyst", "disaster_manager")

HAZARD_TYPES = ("tsunami", "flood", "high_waves", "storm_surge", "abnormal_sea_behavior")
URGENT_HAZARDS = ("tsunami", "storm_surge")

REPORT_STATUSES = ("pending", "verified", "rejected")
SENTIMENTS = ("positive", "negative", "neutral")

RISK_LEVELS = ("low", "medium", "high", "critical")
PREDICTION_STATUSES = ("active", "resolved", "false_positive")
PREDICTION_TIMEFRAMES = ("6h", "24h", "72h")

# Seeded coastal monitoring points (name, lat, lng)
INDIAN_COASTAL_LOCATIONS = [
    # West Coast - Arabian Sea
    ("Mumbai", 19.076, 72.8777),
    ("Goa", 15.2993, 74.1240),
    ("Mangalore", 12.9141, 74.8560),
    ("Kochi", 9.9312, 76.2673),
    ("Kozhikode", 11.2588, 75.7804),
    ("Trivandrum", 8.5241, 76.9366),
    # East Coast - Bay of Bengal
    ("Chennai", 13.0827, 80.2707),
    ("Puducherry", 11.9416, 79.8083),
    ("Cuddalore", 11.7480, 79.7714),
    ("Nagapattinam", 10.7656, 79.8424),
    ("Rameswaram", 9.2876, 79.3129),
    ("Kanyakumari", 8.0883, 77.5385),
    ("Tuticorin", 8.7642, 78.1348),
    ("Kolkata", 22.5726, 88.3639),
    ("Visakhapatnam", 17.6868, 83.2185),
    ("Kakinada", 16.9891, 82.2475),
    ("Gopalpur", 19.2644, 84.8620),
    ("Puri", 19.8135, 85.8312),
    ("Paradip", 20.3163, 86.6114),
    # Island Territories
    ("Port Blair", 11.6234, 92.7265),
    ("Kavaratti", 10.5667, 72.6167),
]
