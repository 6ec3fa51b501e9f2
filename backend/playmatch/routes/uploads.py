"""
routes/uploads.py — Photo upload and download.

Endpoints (base url_prefix=/api/v1/uploads):
  POST   /uploads/photo        → 201  multipart field "photo" → {"photo_url": ...}
  GET    /uploads/:filename    → 200  the stored file

Requests larger than MAX_CONTENT_LENGTH are rejected by Flask before the
handler runs and rendered as FILE_TOO_LARGE (413) by the global handler.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, send_from_directory, url_for

from backend.playmatch.middleware.auth_middleware import require_auth
from backend.playmatch.services import upload_service

uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.route("/photo", methods=["POST"])
@require_auth
def upload_photo():
    """POST /uploads/photo"""
    filename = upload_service.save_photo(
        upload=request.files.get("photo"),
        upload_folder=current_app.config["UPLOAD_FOLDER"],
        allowed_extensions=current_app.config["ALLOWED_PHOTO_EXTENSIONS"],
    )
    photo_url = url_for("uploads.get_upload", filename=filename)
    return jsonify({"data": {"photo_url": photo_url}, "warnings": []}), 201


@uploads_bp.route("/<path:filename>", methods=["GET"])
def get_upload(filename: str):
    """GET /uploads/:filename — public, so photo URLs work in <img> tags."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
