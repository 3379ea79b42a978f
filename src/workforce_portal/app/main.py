import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from workforce_portal.app.config import Settings, load_settings
from workforce_portal.app.middleware.access_log import AccessLogMiddleware
from workforce_portal.app.routes import tasks
from workforce_portal.domain.errors import TaskNotFoundError
from workforce_portal.infra.db.sqlite import create_schema, make_engine, make_sessionmaker, make_sqlite_url
from workforce_portal.infra.db.task_repo_memory import InMemoryTaskRepo
from workforce_portal.infra.db.task_repo_sqlite import SQLiteTaskRepo
from workforce_portal.observability.logging import setup_logging
from workforce_portal.services.task_service import TaskService

logger = logging.getLogger("workforce.system")


def create_app(settings: Optional[Settings] = None, service: Optional[TaskService] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_dir)
    logger.info("system.start", extra={"category": "system", "event": "system.start", "store": settings.task_store})

    app = FastAPI(title="Workforce Portal")
    app.add_middleware(AccessLogMiddleware)

    engine = None
    if service is None:
        if settings.task_store == "memory":
            repo = InMemoryTaskRepo()
        else:
            engine = make_engine(make_sqlite_url(settings.db_path))
            repo = SQLiteTaskRepo(make_sessionmaker(engine))
        service = TaskService(repo, tz=settings.tz)
    svc = service
    tasks.get_service = lambda: svc

    app.include_router(tasks.router)

    @app.exception_handler(TaskNotFoundError)
    async def _task_not_found(request: Request, exc: TaskNotFoundError):
        # already logged by TaskService.find_task
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    if engine is not None:
        # Create tables on startup
        @app.on_event("startup")
        async def _startup():
            await create_schema(engine)
            logger.info(
                "db.ready",
                extra={"category": "system", "event": "db.ready", "db_path": settings.db_path},
            )

        @app.on_event("shutdown")
        async def _shutdown():
            await engine.dispose()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
