from flask import Blueprint, request, jsonify, current_app, send_from_directory, url_for

from utils.files import save_upload

bp = Blueprint("files", __name__)


@bp.post("/files")
def upload_file():
    """
    Upload a file
    ---
    tags: [Files]
    consumes: [multipart/form-data]
    parameters:
      - in: formData
        name: file
        type: file
        required: true
    responses:
      200:
        description: Absolute URL of the stored file
      400:
        description: No file provided
    """
    filename = save_upload(request.files.get("file"))
    return jsonify({"url": url_for("files.get_file", filename=filename, _external=True)}), 200


@bp.get("/storage/<path:filename>")
def get_file(filename: str):
    """
    Download an uploaded file
    ---
    tags: [Files]
    parameters:
      - in: path
        name: filename
        type: string
        required: true
    responses:
      200: { description: File content }
      404: { description: Not found }
    """
    return send_from_directory(current_app.config["STORAGE_DIR"], filename)
