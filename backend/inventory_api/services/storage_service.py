# Overview: Local file storage for uploaded product images.

from __future__ import annotations

import os
import uuid

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError

UPLOAD_URL_PREFIX = "/uploads/"
ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


def save_upload(file: FileStorage | None, folder: str) -> str | None:
    """
    Store an uploaded image and return its public reference.

    Returns None when no file was sent. The stored name is prefixed with
    a random token so two uploads of "photo.png" never collide.

    Raises:
        ValidationError: file type not allowed
    """
    if file is None or not file.filename:
        return None

    filename = secure_filename(file.filename) or "upload"
    extension = os.path.splitext(filename)[1].lower()
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError("Only image files are allowed")

    stored_name = f"{uuid.uuid4().hex}-{filename}"
    os.makedirs(folder, exist_ok=True)
    file.save(os.path.join(folder, stored_name))
    return UPLOAD_URL_PREFIX + stored_name


def discard_upload(reference: str | None, folder: str) -> None:
    """Remove a file stored by save_upload(). External URLs and None are ignored."""
    if not reference or not reference.startswith(UPLOAD_URL_PREFIX):
        return
    path = os.path.join(folder, os.path.basename(reference[len(UPLOAD_URL_PREFIX):]))
    if os.path.isfile(path):
        os.remove(path)
