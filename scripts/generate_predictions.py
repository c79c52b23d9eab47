# scripts/generate_predictions.py
# Batch risk run over the monitored coastal locations; meant for cron.
import logging

from coastal_watch import create_app
from coastal_watch.services.predictions import generate_all

logger = logging.getLogger("generate_predictions")


def main():
    app = create_app()
    with app.app_context():
        result = generate_all()
    logger.info(result["message"])
    if result["failed_locations"]:
        logger.warning("Failed locations: %s", ", ".join(result["failed_locations"]))


if __name__ == "__main__":
    main()
