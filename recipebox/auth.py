from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models, schemas
from .db import get_db
from .errors import NotAuthenticated, ValidationFailed
from .security import create_access_token, get_current_user, hash_password, verify_password
from .validation import PASSWORD_RULES, validate_email, validate_password

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_IN_USE = "Email already registered"


def _auth_response(user: models.User) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        user=schemas.UserOut.model_validate(user),
        token=create_access_token(user),
    )


def _check_credentials(email, password):
    if not email or not password:
        raise ValidationFailed("Email and password are required")
    if not validate_email(email):
        raise ValidationFailed("Invalid email format")


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(payload: schemas.UserRegister, db: Session = Depends(get_db)):
    _check_credentials(payload.email, payload.password)
    if not validate_password(payload.password):
        raise ValidationFailed(PASSWORD_RULES)

    email = payload.email.strip()
    if crud.get_user_by_email(db, email):
        raise ValidationFailed(EMAIL_IN_USE)

    name = (payload.name or "").strip() or email.split("@")[0]
    try:
        user = crud.create_user(db, email, hash_password(payload.password), name)
    except IntegrityError:
        # Registered concurrently between the lookup and the insert
        db.rollback()
        raise ValidationFailed(EMAIL_IN_USE)
    return _auth_response(user)


@router.post("/login", response_model=schemas.AuthResponse)
def login(payload: schemas.UserLogin, db: Session = Depends(get_db)):
    _check_credentials(payload.email, payload.password)
    user = crud.get_user_by_email(db, payload.email.strip())
    # Same answer for unknown email and wrong password
    if user is None or not verify_password(payload.password, user.password_hash):
        raise NotAuthenticated("Invalid credentials")
    return _auth_response(user)


@router.get("/profile", response_model=schemas.ProfileResponse)
def profile(user: models.User = Depends(get_current_user)):
    return schemas.ProfileResponse(user=schemas.UserOut.model_validate(user))
