from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from academy.backend.handle import dispose_backend_handle
from academy.config import Settings, get_cors_settings, setup_logging
from academy.course_service.api import routes_course
from academy.data.errors import AcademyError
from academy.data.facade import DataAccess
from academy.dependencies import ServicesDep, build_services
from academy.enrollment_service.api import routes_enrollment
from academy.grading_service.api import routes_assignments
from academy.http_errors import academy_error_handler
from academy.progress_service.api import routes_progress
from academy.user_service.api import routes_auth
from academy.user_service.guards import GuardRedirect, guard_redirect_handler


def create_app(settings: Optional[Settings] = None, data: Optional[DataAccess] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await dispose_backend_handle()

    app = FastAPI(title="Academy Core", lifespan=lifespan)
    app.state.services = build_services(settings, data)

    app.add_middleware(CORSMiddleware, **get_cors_settings(settings))
    app.add_exception_handler(GuardRedirect, guard_redirect_handler)
    app.add_exception_handler(AcademyError, academy_error_handler)

    app.include_router(routes_auth.router, prefix="/api/auth")
    app.include_router(routes_course.course_router, prefix="/api/courses")
    app.include_router(routes_enrollment.router, prefix="/api/enrollments")
    app.include_router(routes_progress.router, prefix="/api/progress")
    app.include_router(routes_assignments.assignments_router, prefix="/api/assignments")
    app.include_router(routes_assignments.submissions_router, prefix="/api/submissions")

    @app.get("/api/test")
    async def test():
        return {"message": "API is working!"}

    @app.get("/api/mode")
    async def mode(services: ServicesDep):
        return {"mode": services.data.mode.value}

    return app


if __name__ == "__main__":
    import uvicorn
    setup_logging()
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
