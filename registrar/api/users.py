"""
Public user routes: registration and login.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import AliasChoices, BaseModel, EmailStr, Field

from registrar.models.user import User
from registrar.services.users import PhoneData, UserService


router = APIRouter()


# These will be set by the application on startup
_user_service: Optional[UserService] = None


def set_dependencies(user_service: UserService):
    """Set the dependencies for the user routes."""
    global _user_service
    _user_service = user_service


# ============== Request/Response Models ==============

class PhoneRequest(BaseModel):
    """A phone number in a registration request."""
    number: str = Field(min_length=1, validation_alias=AliasChoices("number", "phoneNumber"))
    city_code: str = Field(min_length=1, validation_alias=AliasChoices("citycode", "city_code", "cityCode"))
    country_code: str = Field(
        min_length=1,
        validation_alias=AliasChoices("contrycode", "countrycode", "country_code", "countryCode"),
    )


class RegisterRequest(BaseModel):
    """Registration request body."""
    name: str = Field(min_length=1, validation_alias=AliasChoices("name", "fullName", "full_name"))
    email: EmailStr = Field(validation_alias=AliasChoices("email", "userEmail"))
    password: str = Field(min_length=1, validation_alias=AliasChoices("password", "userPassword"))
    phones: List[PhoneRequest] = Field(min_length=1)


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(min_length=1)


class PhoneResponse(BaseModel):
    number: str
    city_code: str
    country_code: str


class UserResponse(BaseModel):
    """A registered user."""
    id: str
    name: str
    email: str
    created: datetime
    modified: datetime
    last_login: datetime
    token: str
    is_active: bool
    phones: List[PhoneResponse]


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.full_name,
        email=user.email,
        created=user.created_at,
        modified=user.updated_at,
        last_login=user.last_login,
        token=user.token,
        is_active=user.is_active,
        phones=[
            PhoneResponse(
                number=phone.number,
                city_code=phone.city_code,
                country_code=phone.country_code,
            )
            for phone in user.phones
        ],
    )


def _service() -> UserService:
    if not _user_service:
        raise HTTPException(status_code=503, detail="Service not configured")
    return _user_service


# ============== Routes ==============

@router.post("/api/users/register", response_model=UserResponse, status_code=201)
async def register(body: RegisterRequest):
    """
    Register a new user.

    The password must satisfy the current password policy.
    """
    user = await _service().register(
        full_name=body.name,
        email=body.email,
        password=body.password,
        phones=[
            PhoneData(number=p.number, city_code=p.city_code, country_code=p.country_code)
            for p in body.phones
        ],
    )
    return _to_response(user)


@router.post("/api/auth/login", response_model=UserResponse)
async def login(body: LoginRequest):
    """
    Authenticate a user and get a fresh token.
    """
    user = await _service().login(body.email, body.password)
    return _to_response(user)


# ============== Health Check ==============

@router.get("/health")
async def health_check():
    """
    Health check endpoint (no auth required).
    """
    return {"status": "ok"}
