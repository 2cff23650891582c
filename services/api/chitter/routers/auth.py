"""
Authentication endpoints:
  POST /api/auth/signup — create an identity
  POST /api/auth/login  — verify the password, issue a session token
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from chitter.database import get_db
from chitter.domain import identity
from chitter.schemas import LoginRequest, LoginResponse, SignupRequest, SignupResponse

router = APIRouter()


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await identity.create_identity(
        db, body.first_name, body.last_name, body.email, body.password
    )
    return SignupResponse(message="User created successfully", uid=user.user_id)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user, token = await identity.authenticate(db, body.email, body.password)
    return LoginResponse(message="Login successful", user_id=user.user_id, token=token)
