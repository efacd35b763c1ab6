from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from consultation_report.api.routes.consultation_routes import router as consultation_routes
from consultation_report.core.config import settings
from consultation_report.core.errors import ErrorKind, NormalizedError, http_status, normalize
from consultation_report.core.logging_config import configure_logging, get_logger
from consultation_report.services.followup_workflow import InvalidTransitionError

logger = get_logger(__name__)

_REQUEST_PARTS = ("body", "path", "query")


def _validation_message(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in _REQUEST_PARTS)
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(problems) or "Invalid request"


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.APP_TITLE,
        description="Consultation report assembly and follow-up workflow",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NormalizedError)
    async def normalized_error_handler(request: Request, exc: NormalizedError):
        return JSONResponse({"ok": False, "error": exc.to_dict()}, status_code=http_status(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = NormalizedError(ErrorKind.VALIDATION, _validation_message(exc), status=422, cause=exc)
        return JSONResponse({"ok": False, "error": error.to_dict()}, status_code=http_status(error))

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return JSONResponse(
            {"ok": False, "error": {"code": "INVALID_TRANSITION", "message": str(exc), "state": exc.state.value}},
            status_code=409,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        error = normalize(exc)
        logger.exception("Unhandled error", extra={"path": request.url.path, "code": error.code.value})
        return JSONResponse({"ok": False, "error": error.to_dict()}, status_code=http_status(error))

    app.include_router(consultation_routes)
    return app


app = create_app()
