# coastal_watch/services/social_feed.py
import logging
from datetime import datetime

from coastal_watch.database import db
from coastal_watch.models import SocialMediaPost
from coastal_watch.services.social_analytics import classify_post, detect_location
from coastal_watch.services.twitter_client import search_tweets, DEFAULT_QUERY

logger = logging.getLogger(__name__)


def _parse_tweet_time(value):
    if not value:
        return datetime.utcnow()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return datetime.utcnow()


def post_from_tweet(tweet):
    hazard, sentiment = classify_post(tweet.get("text"))
    post = SocialMediaPost(
        source="Twitter",
        content=tweet.get("text") or "",
        hazard_type=hazard,
        sentiment=sentiment,
        external_id=str(tweet["id"]) if tweet.get("id") else None,
        created_at=_parse_tweet_time(tweet.get("created_at")),
    )
    loc = detect_location(post.content)
    if loc:
        post.location_name, post.latitude, post.longitude = loc
    return post


def ingest_tweets(q=None, max_results=50):
    """Search Twitter, classify each tweet and store the ones not seen before."""
    result = search_tweets(q or DEFAULT_QUERY, max_results=max_results)

    ids = [str(t["id"]) for t in result["tweets"] if t.get("id")]
    known = set()
    if ids:
        known = {
            row[0] for row in
            db.session.query(SocialMediaPost.external_id).filter(SocialMediaPost.external_id.in_(ids)).all()
        }

    created = []
    for tweet in result["tweets"]:
        if not tweet.get("text") or str(tweet.get("id")) in known:
            continue
        post = post_from_tweet(tweet)
        db.session.add(post)
        created.append(post)
        known.add(post.external_id)
    db.session.commit()

    logger.info("Ingested %d of %d tweets", len(created), len(result["tweets"]))
    return {
        "fetched": len(result["tweets"]),
        "stored": len(created),
        "skipped": len(result["tweets"]) - len(created),
        "posts": [p.to_dict() for p in created],
        "meta": result["meta"],
    }
