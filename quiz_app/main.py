# quiz_app/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quiz_app.core.config import settings
from quiz_app.core.logging import configure_logging, get_logger
from quiz_app.db.base import init_db
from quiz_app.guard.errors import FormRejected, ErrorKind, message_for

import quiz_app.api.auth as auth_api
import quiz_app.api.pages as pages_api
import quiz_app.api.stats as stats_api
from quiz_app.api.deps import Services, build_services


def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log = configure_logging(settings.log_level)
        owned = None
        if getattr(app.state, "services", None) is None:
            if settings.backend == "local":
                await init_db()
            owned = build_services(settings)
            app.state.services = owned
            log.info("signup guard ready (backend=%s)", settings.backend)
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()
                app.state.services = None

    app = FastAPI(title="QuizAI", lifespan=lifespan)
    app.state.services = services

    app.include_router(pages_api.router)
    app.include_router(auth_api.router)
    app.include_router(stats_api.router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FormRejected)
    async def _form_rejected(request: Request, exc: FormRejected):
        body = {"detail": exc.message, "kind": exc.kind.value}
        if exc.violations:
            body["violations"] = exc.violations
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        get_logger("main").exception("unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": message_for(ErrorKind.UNEXPECTED), "kind": ErrorKind.UNEXPECTED.value},
        )

    return app


app = create_app()
