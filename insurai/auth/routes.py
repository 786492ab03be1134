"""
Auth HTTP routes — POST /api/auth/register, POST /api/auth/login,
                   GET /api/auth/states, GET /api/auth/me

Passwords are bcrypt-hashed before storage and never logged or returned.
Every new account gets role "user"; admins come from scripts/create_admin.py.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from insurai.auth.dependencies import AuthContext, get_current_user
from insurai.auth.schemas import LoginRequest, RegisterRequest
from insurai.auth.security import create_access_token, hash_password, verify_password
from insurai.database import get_db
from insurai.errors import AuthError, ConflictError, InvalidStateError, NotFoundError
from insurai.store import (
    create_user,
    get_state,
    get_user_by_email,
    get_user_by_id,
    list_states,
    user_to_dict,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Create a user account and return a token for it.

    Returns:
        201: {message, token, user}
        400: validation failure or unknown state id
        409: email already registered
    """
    if await get_user_by_email(db, body.email) is not None:
        raise ConflictError("Email already registered")

    if await get_state(db, body.state_id) is None:
        raise InvalidStateError("Invalid state ID")

    user = await create_user(
        db,
        email=body.email,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        state_id=body.state_id,
    )
    token = create_access_token(user.id, user.email, user.role)
    return JSONResponse(
        status_code=201,
        content={
            "message": "User registered successfully",
            "token": token,
            "user": user_to_dict(user),
        },
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    # Same message for unknown email and wrong password
    user = await get_user_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("Failed login attempt")
        raise AuthError("Invalid email or password")

    logger.info("User logged in user_id=%s", user.id)
    return {
        "message": "Login successful",
        "token": create_access_token(user.id, user.email, user.role),
        "user": user_to_dict(user),
    }


@router.get("/states")
async def states(db: AsyncSession = Depends(get_db)) -> dict:
    return {"states": await list_states(db)}


@router.get("/me")
async def me(
    current: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await get_user_by_id(db, current.id)
    if user is None:
        raise NotFoundError("User not found")
    return {"user": user_to_dict(user)}
