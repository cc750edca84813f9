# carservice/routers/auth.py

from fastapi import APIRouter, Depends

from .. import schemas
from ..repositories import AuthRepository
from .deps import get_auth_repository, get_current_user, unwrap

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token(auth: AuthRepository) -> schemas.Token:
    return schemas.Token(access_token=auth.current_id_token())


@router.post("/register", response_model=schemas.Token, status_code=201)
async def register(req: schemas.RegisterRequest, auth: AuthRepository = Depends(get_auth_repository)):
    unwrap(await auth.register(req.email, req.password, req.name, req.phone, req.role))
    return _token(auth)


@router.post("/login", response_model=schemas.Token)
async def login(req: schemas.LoginRequest, auth: AuthRepository = Depends(get_auth_repository)):
    unwrap(await auth.sign_in(req.email, req.password))
    return _token(auth)


@router.get("/me", response_model=schemas.User)
async def me(user: schemas.User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=schemas.User)
async def update_me(
    req: schemas.ProfileUpdate,
    user: schemas.User = Depends(get_current_user),
    auth: AuthRepository = Depends(get_auth_repository),
):
    updated = user.model_copy(update=req.model_dump(exclude_unset=True))
    return unwrap(await auth.update_profile(updated))
