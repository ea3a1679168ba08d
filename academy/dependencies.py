"""Service wiring for FastAPI routes.

The data access facade and the services on top of it are built once when
the application is created and stored on ``app.state``; these functions hand
them to routes.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request

from academy.backend.handle import get_backend_handle
from academy.backend.mode import Mode, current_mode
from academy.config import Settings
from academy.data.facade import DataAccess
from academy.enrollment_service.service import EnrollmentAuthority
from academy.grading_service.service import GradingEngine
from academy.progress_service.service import ProgressTracker


@dataclass
class Services:
    settings: Settings
    data: DataAccess
    enrollments: EnrollmentAuthority
    progress: ProgressTracker
    grading: GradingEngine


def build_services(settings: Settings, data: Optional[DataAccess] = None) -> Services:
    if data is None:
        handle = get_backend_handle(settings)
        mode = current_mode(handle, settings)
        data = DataAccess(mode, handle=handle) if mode is Mode.LIVE else DataAccess.demo()

    enrollments = EnrollmentAuthority(data, retry_attempts=settings.retry_attempts)
    return Services(
        settings=settings,
        data=data,
        enrollments=enrollments,
        progress=ProgressTracker(data, enrollments),
        grading=GradingEngine(data, enrollments, retry_attempts=settings.retry_attempts),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def get_settings(services: ServicesDep) -> Settings:
    return services.settings


def get_enrollment_authority(services: ServicesDep) -> EnrollmentAuthority:
    return services.enrollments


def get_progress_tracker(services: ServicesDep) -> ProgressTracker:
    return services.progress


def get_grading_engine(services: ServicesDep) -> GradingEngine:
    return services.grading


def get_data_access(services: ServicesDep) -> DataAccess:
    return services.data


SettingsDep = Annotated[Settings, Depends(get_settings)]
EnrollmentAuthorityDep = Annotated[EnrollmentAuthority, Depends(get_enrollment_authority)]
ProgressTrackerDep = Annotated[ProgressTracker, Depends(get_progress_tracker)]
GradingEngineDep = Annotated[GradingEngine, Depends(get_grading_engine)]
DataAccessDep = Annotated[DataAccess, Depends(get_data_access)]
