"""
Local object storage for profile pictures.

upload(local_path) moves a temporary file into the public upload folder and
returns {"url": ...}. The temporary file is removed whether or not the move
succeeds.
"""
from __future__ import annotations

import logging
import os
import shutil
import uuid

from utils.exceptions import InternalError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


class LocalUploader:
    def __init__(self, upload_folder: str, base_url: str, url_path: str = "/uploads"):
        self.upload_folder = upload_folder
        self.base_url = base_url.rstrip("/")
        self.url_path = url_path

    def upload(self, local_path: str) -> dict:
        ext = os.path.splitext(local_path)[1].lower()
        name = f"{uuid.uuid4().hex}{ext}"
        target = os.path.join(self.upload_folder, name)
        try:
            os.makedirs(self.upload_folder, exist_ok=True)
            shutil.move(local_path, target)
        except OSError as exc:
            logger.exception("Upload of %s failed", local_path)
            if os.path.exists(local_path):
                os.remove(local_path)
            raise InternalError() from exc
        return {"url": f"{self.base_url}{self.url_path}/{name}"}
