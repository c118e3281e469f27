from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_auth_service, get_db
from app.schemas.user_scheme import LoginRequest, LoginResponse, MessageResponse, RegisterRequest, VerifyRequest
from app.services.auth_service import AuthService

router = APIRouter()


# Send a verification code to the email
@router.post("/register", response_model=MessageResponse)
async def register_user(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.register(db, request.email)


# Check the code and set the password
@router.post("/verify", response_model=MessageResponse)
def verify_email(
    request: VerifyRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    code = str(request.code) if request.code is not None else None
    return auth.verify(db, request.email, code, request.password)


@router.post("/login", response_model=LoginResponse)
def login_user(
    request: LoginRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.login(db, request.email, request.password)
