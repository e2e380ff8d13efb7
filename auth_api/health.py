from flask import Blueprint

from models import storage

API_VERSION = "1.0.0"

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check, including a database round trip
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status: { type: string, example: ok }
            version: { type: string, example: 1.0.0 }
            database: { type: string, example: ok }
      503:
        description: Database unreachable
    """
    if storage.ping():
        return {"status": "ok", "version": API_VERSION, "database": "ok"}, 200
    return {"status": "degraded", "version": API_VERSION, "database": "unavailable"}, 503
