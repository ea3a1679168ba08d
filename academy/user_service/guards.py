"""Route guards.

Each guard is a FastAPI dependency that either yields the authenticated
session or sends the client elsewhere with a redirect. Guards keep no state
of their own; enrollment is asked of the ``EnrollmentAuthority`` per request.
"""

import logging
from typing import Annotated, Optional
from urllib.parse import urlencode

from fastapi import Depends, Request
from fastapi.responses import RedirectResponse
from fastapi.security import OAuth2PasswordBearer

from academy.dependencies import EnrollmentAuthorityDep, SettingsDep
from academy.user_service.security import AuthSession, decode_session

logger = logging.getLogger("guards")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class GuardRedirect(Exception):
    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(reason)


async def guard_redirect_handler(request: Request, exc: GuardRedirect):
    return RedirectResponse(url=exc.location, status_code=303, headers={"x-guard-reason": exc.reason})


def _login_location(settings, request: Request) -> str:
    return f"{settings.login_path}?{urlencode({'next': request.url.path})}"


async def optional_session(settings: SettingsDep,
                           token: Optional[str] = Depends(oauth2_scheme)) -> Optional[AuthSession]:
    if not token:
        return None
    return decode_session(token, settings)


async def require_session(request: Request, settings: SettingsDep,
                          session: Optional[AuthSession] = Depends(optional_session)) -> AuthSession:
    if session is None:
        logger.info(f"Unauthenticated access to {request.url.path}, redirecting to login")
        raise GuardRedirect(_login_location(settings, request), "unauthenticated")
    return session


SessionDep = Annotated[AuthSession, Depends(require_session)]


async def require_admin(session: SessionDep, settings: SettingsDep) -> AuthSession:
    if not session.can("grade"):
        logger.warning(f"User {session.user_id} lacks admin capability")
        raise GuardRedirect(settings.dashboard_path, "forbidden")
    return session


AdminSessionDep = Annotated[AuthSession, Depends(require_admin)]


async def require_enrollment(course_id: int, session: SessionDep,
                             authority: EnrollmentAuthorityDep) -> AuthSession:
    enrolled, error = await authority.is_enrolled(session.user_id, course_id)
    if error:
        # a failed lookup is not "not enrolled"; surface it instead of redirecting
        raise error
    if not enrolled:
        raise GuardRedirect(f"/courses/{course_id}", "not_enrolled")
    return session


EnrolledSessionDep = Annotated[AuthSession, Depends(require_enrollment)]
