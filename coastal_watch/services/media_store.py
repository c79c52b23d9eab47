# coastal_watch/services/media_store.py
import logging
import time
from pathlib import Path

from flask import current_app, url_for

from coastal_watch.services import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXT = {"jpg", "jpeg", "png", "gif", "webp", "mp4", "mov"}


def allowed_file(filename):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXT


def _size_of(f):
    stream = f.stream
    pos = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(pos)
    return size


def save_media(f, user_id):
    """
    Store an uploaded hazard photo/video under UPLOAD_FOLDER/<user_id>/ and
    return its public URL. Files are renamed to <ms timestamp>.<ext>.
    """
    if f.filename == "" or not allowed_file(f.filename):
        raise ValidationError("Invalid file type")

    max_bytes = current_app.config["MAX_MEDIA_BYTES"]
    if _size_of(f) > max_bytes:
        raise ValidationError(f"File too large; limit is {max_bytes // (1024 * 1024)}MB")

    ext = f.filename.rsplit(".", 1)[1].lower()
    folder = Path(current_app.config["UPLOAD_FOLDER"]) / str(user_id)
    folder.mkdir(parents=True, exist_ok=True)

    filename = f"{int(time.time() * 1000)}.{ext}"
    f.save(folder / filename)
    logger.info("Stored media %s/%s", user_id, filename)
    return url_for("api.media", user_id=user_id, filename=filename)
