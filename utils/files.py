"""
Uploaded file storage: files land in STORAGE_DIR as ``<epoch-ms>-<rand8>.<ext>``.
"""
from __future__ import annotations

import os
import time
import uuid

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from utils.exceptions import BadRequest


def _extension(upload: FileStorage) -> str:
    name = secure_filename(upload.filename or "")
    if "." in name:
        return name.rsplit(".", 1)[1].lower()
    # fall back to the subtype of the declared mimetype ("image/png" -> "png")
    mimetype = upload.mimetype or ""
    return mimetype.split("/", 1)[1].lower() if "/" in mimetype else ""


def save_upload(upload: FileStorage, images_only: bool = False) -> str:
    """Write ``upload`` under STORAGE_DIR and return the stored filename."""
    if upload is None or not upload.filename:
        raise BadRequest("No file provided")
    ext = _extension(upload)
    if images_only and ext not in current_app.config["ALLOWED_IMAGE_EXTENSIONS"]:
        raise BadRequest("Unsupported image type")

    # epoch-ms plus a short suffix: two uploads in the same millisecond must not collide
    stem = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
    filename = secure_filename(f"{stem}.{ext}" if ext else stem)
    upload.save(os.path.join(current_app.config["STORAGE_DIR"], filename))
    return filename
