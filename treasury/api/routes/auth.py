from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...container import Container
from ...models.user import User, UserCreate
from ..dependencies import auth_rate_limit, container, current_user
from ..responses import ok

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/register", status_code=201, dependencies=[Depends(auth_rate_limit)])
def register(data: UserCreate, c: Container = Depends(container)):
    return ok(c.get_user_service().register(data))


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
def login(data: LoginRequest, c: Container = Depends(container)):
    user, token = c.get_user_service().authenticate(data.email, data.password)
    return ok(
        {
            "user": user,
            "access_token": token,
            "token_type": "bearer",
            "expires_in": c.get_user_service().token_manager.max_age_seconds,
        }
    )


@router.get("/me")
def me(user: User = Depends(current_user)):
    return ok(user)
