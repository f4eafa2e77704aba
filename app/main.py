from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.academic_years.router import router as academic_years_router
from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.classes.router import router as classes_router
from app.api.v1.holidays.router import router as holidays_router
from app.api.v1.leaves.router import router as leaves_router
from app.api.v1.reports.router import router as reports_router
from app.api.v1.seasons.router import router as seasons_router
from app.api.v1.students.router import router as students_router
from app.core.app_logger import configure_logging
from app.core.config import settings


def create_app() -> FastAPI:
    configure_logging(settings.log_level, json=settings.log_json)
    app = FastAPI(title="School Attendance Backend")

    # CORS: allow the admin console to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(academic_years_router)
    app.include_router(seasons_router)
    app.include_router(holidays_router)
    app.include_router(classes_router)
    app.include_router(students_router)
    app.include_router(leaves_router)
    app.include_router(attendance_router)
    app.include_router(reports_router)

    return app


app = create_app()
