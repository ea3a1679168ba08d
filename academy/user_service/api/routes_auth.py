import logging

from fastapi import APIRouter, HTTPException

from academy.dependencies import DataAccessDep, SettingsDep
from academy.http_errors import unwrap
from academy.user_service import schemas, security
from academy.user_service.guards import SessionDep

router = APIRouter(tags=["Authentication"])

logger = logging.getLogger("user_service")


@router.post("/login", response_model=schemas.Token)
async def login(form: schemas.UserLogin, data: DataAccessDep, settings: SettingsDep):
    user = unwrap(await data.users.find_one(email=form.email.lower()))

    if not user or not user.password_hash or not security.verify_password(form.password, user.password_hash):
        logger.warning(f"Failed login for {form.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token_data = {"user_id": user.id, "role": user.role, "email": user.email}
    token = security.create_access_token(token_data, settings)
    logger.info(f"User {user.id} logged in")
    return {"access_token": token, "token_type": "bearer"}


@router.get("/users/me", response_model=schemas.UserOut)
async def read_current_user(session: SessionDep, data: DataAccessDep):
    user = unwrap(await data.users.get(session.user_id))
    return schemas.UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        is_admin=session.is_admin,
        created_at=user.created_at,
    )
