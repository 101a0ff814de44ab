import re

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from consultations.auth import jwt_handler
from consultations.auth.dependencies import get_current_user
from consultations.core import config
from consultations.core.clients import BridgeContainer, get_bridges
from consultations.database import get_db
from consultations.models.user import User
from consultations.services.accounts import authenticate_user, change_password, register_user

router = APIRouter(tags=['auth'])

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_PATTERN = re.compile(r'^[6-9]\d{9}$')
MIN_PASSWORD_LENGTH = 6


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Please include a valid email.')
    return normalized


def normalize_phone(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    normalized = value.strip()
    if not PHONE_PATTERN.match(normalized):
        raise ValueError('Phone number must be 10 digits.')
    return normalized


def validate_password_length(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f'Password must be {MIN_PASSWORD_LENGTH} or more characters.')
    return value


class RegisterRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    phone: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        return validate_password_length(value)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return validate_password_length(value)


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: str
    email_notifications: bool = True
    browser_notifications: bool = True

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    success: bool = True
    message: str
    access_token: str
    token_type: str = 'bearer'
    user: UserResponse


@router.post('/register', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    bridges: BridgeContainer = Depends(get_bridges),
):
    user, _ = register_user(
        db,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        notifier=bridges.notifier,
        login_url=f'{config.FRONTEND_URL}/login',
    )
    return TokenResponse(
        message='Registration successful.',
        access_token=jwt_handler.create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_user(db, data.email, data.password)
    return TokenResponse(
        message='Login successful',
        access_token=jwt_handler.create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put('/update-password', response_model=TokenResponse)
def update_password(
    data: UpdatePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = change_password(db, current_user, data.current_password, data.new_password)
    return TokenResponse(
        message='Password updated successfully',
        access_token=jwt_handler.create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )
