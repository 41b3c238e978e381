from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .contracts import Coordinates
from .errors import InvalidReport
from .store import ReportStore
from .triage import TriageEngine

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def validate_submission(body: Dict[str, Any]) -> tuple[str, Coordinates]:
    """Reject a submission before any classifier call is made."""
    image = body.get("imageData")
    gps = body.get("gpsCoordinates")
    if not image or not isinstance(image, str) or not gps:
        raise InvalidReport("Missing required fields: imageData and gpsCoordinates")
    if not isinstance(gps, dict):
        raise InvalidReport("Invalid GPS coordinates")
    lat, lon = gps.get("latitude"), gps.get("longitude")
    if not (_is_number(lat) and _is_number(lon)):
        raise InvalidReport("Invalid GPS coordinates")
    return image, Coordinates(latitude=lat, longitude=lon)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[TriageEngine] = None,
    store: Optional[ReportStore] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)
    engine = engine or TriageEngine.from_settings(settings)
    store = store or ReportStore(settings.db_path)

    app = FastAPI(title="Stray Triage API", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(_request: Request, exc: RequestValidationError):
        logger.info("Rejected request body: %s", exc.errors())
        return _error(400, "Invalid request body")

    @app.get("/health")
    def health():
        return {"status": "ok", "version": VERSION}

    @app.post("/api/reports")
    def submit_report(body: Dict[str, Any] = Body(...)):
        try:
            image, coords = validate_submission(body)
        except InvalidReport as e:
            return _error(400, str(e))

        force = body.get("forceSimulation")
        try:
            result = engine.triage(image, coords, force_simulation=force if isinstance(force, bool) else None)
            report = store.create(result, image_data=image, coordinates=coords)
        except Exception:
            # ClassificationFailed and store write errors alike
            logger.exception("Error processing report")
            return _error(500, "Internal server error")

        return {"success": True, "reportId": report.id, "triageResult": result.model_dump()}

    @app.get("/api/reports")
    def list_reports():
        reports = store.list_by_priority()
        return {"reports": [r.model_dump(mode="json") for r in reports]}

    @app.delete("/api/reports")
    def delete_report(report_id: Optional[str] = Query(None, alias="id")):
        if not report_id:
            return _error(400, "Missing report ID")
        try:
            deleted = store.delete(report_id)
        except Exception:
            logger.exception("Error deleting report")
            return _error(500, "Internal server error")
        if not deleted:
            return _error(404, "Report not found")
        return {"success": True, "message": "Report deleted successfully"}

    return app


def main() -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
