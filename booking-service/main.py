from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from typing import Optional
import logging
import os

from db import SessionLocal, init_db
from dependencies import Services, build_services
from errors import SchedulingError
from repository import SqlRepository
import instructor_routes
import lesson_routes
import request_routes
import student_routes

# CONFIG
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(title="booking-service")

    if services is None:
        services = build_services(SqlRepository(SessionLocal))

        # ---------- DB ----------
        @app.on_event("startup")
        async def startup():
            await init_db()
            logger.info("Database ready")

    app.state.services = services

    # ---------- ERRORS ----------
    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(instructor_routes.router)
    app.include_router(student_routes.router)
    app.include_router(lesson_routes.router)
    app.include_router(request_routes.router)
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=LOG_LEVEL.lower(),
    )
