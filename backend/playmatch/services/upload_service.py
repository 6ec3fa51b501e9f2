"""
services/upload_service.py — Photo storage on the local filesystem.

Files land in UPLOAD_FOLDER under "<8 hex chars>_<secure filename>" and are
served back by GET /api/v1/uploads/<filename>. The size cap is enforced by
Flask (MAX_CONTENT_LENGTH -> FILE_TOO_LARGE, 413) before this code runs.

Layer rules:
  - No Flask imports. The route passes the folder and extension set in.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from backend.playmatch.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if "." in filename else ""


def save_photo(
        upload: FileStorage | None,
        upload_folder: str,
        allowed_extensions: frozenset[str],
) -> str:
    """
    Validates and stores an uploaded photo. Returns the stored filename.

    Raises:
      AppError(FILE_MISSING, 400) — no file part, or an empty filename
      AppError(INVALID_FILE_TYPE, 400) — extension not in allowed_extensions
    """
    if upload is None or not upload.filename:
        raise AppError(
            ErrorCode.FILE_MISSING,
            "A photo file is required.",
            400,
            field="photo",
        )

    safe_name = secure_filename(upload.filename)
    ext = _extension(safe_name)
    if ext not in allowed_extensions:
        raise AppError(
            ErrorCode.INVALID_FILE_TYPE,
            f"File type '.{ext}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_extensions))}.",
            400,
            field="photo",
        )

    folder = Path(upload_folder)
    folder.mkdir(parents=True, exist_ok=True)

    stored_name = f"{uuid.uuid4().hex[:8]}_{safe_name}"
    upload.save(folder / stored_name)

    logger.info("Stored uploaded photo %s", stored_name)
    return stored_name
