from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse, Response
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from classgroups.config import Settings, create_db, create_db_engine, create_session_factory, get_settings
from classgroups.events.notifier import ChangeNotifier
from classgroups.routes.roster_routes import roster_routes
from classgroups.schemas.api_schemas import HealthResponse
from classgroups.services.assignment_engine import AssignmentEngine
from classgroups.services.errors import RosterError
from classgroups.services.persistence import RosterRepository
from classgroups.services.roster_service import RosterService
from classgroups.services.roster_store import RosterStore
from classgroups.utils.logger import clear_request_id, configure_logging, set_request_id

logger = configure_logging()


def build_roster_service(settings: Settings) -> RosterService:
    engine = create_db_engine(settings.database_url)
    create_db(engine)
    return RosterService(
        store=RosterStore(settings.group_capacities),
        engine=AssignmentEngine(reset_token=settings.reset_token),
        repository=RosterRepository(create_session_factory(engine)),
        notifier=ChangeNotifier(queue_size=settings.subscriber_queue_size),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(log_dir=settings.log_dir, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = build_roster_service(settings)
        service.load(settings.legacy_state_file)
        app.state.roster_service = service
        yield

    app = FastAPI(title="classgroups", lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        # NOTE: EventSource cannot set custom headers; allow request id via query param as a fallback.
        rid = set_request_id(request.headers.get("x-request-id") or request.query_params.get("rid"))
        try:
            logger.info("request start method=%s path=%s client=%s", request.method, request.url.path, request.client)
            response: Response = await call_next(request)
            logger.info("request end status=%s method=%s path=%s", response.status_code, request.method, request.url.path)
            response.headers["x-request-id"] = rid
            return response
        except Exception:
            logger.exception("request error method=%s path=%s", request.method, request.url.path)
            raise
        finally:
            clear_request_id()

    @app.exception_handler(RosterError)
    async def roster_error_handler(request: Request, exc: RosterError) -> JSONResponse:
        logger.warning("rejected status=%s error=%s method=%s path=%s detail=%s", exc.status_code, exc.code, request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("http error status=%s method=%s path=%s detail=%s", exc.status_code, request.method, request.url.path, exc.detail)
        else:
            logger.warning("http error status=%s method=%s path=%s detail=%s", exc.status_code, request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": "http", "detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("validation error method=%s path=%s errors=%s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"ok": False, "error": "validation", "detail": "Invalid request"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        # Never leak internal exception details to clients.
        logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "internal", "detail": "Internal Server Error"},
        )

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(message="classgroups is healthy")

    app.include_router(roster_routes)
    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
