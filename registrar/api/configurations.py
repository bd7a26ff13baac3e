"""
Configuration API routes.

All routes require a bearer token issued by registration or login.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import AliasChoices, BaseModel, Field

from registrar.errors import InvalidCredentials
from registrar.services.configuration import ConfigurationService, ParameterView
from registrar.services.tokens import TokenService


router = APIRouter()


# These will be set by the application on startup
_configuration_service: Optional[ConfigurationService] = None
_token_service: Optional[TokenService] = None


def set_dependencies(
    configuration_service: ConfigurationService,
    token_service: TokenService,
):
    """Set the dependencies for the configuration routes."""
    global _configuration_service, _token_service
    _configuration_service = configuration_service
    _token_service = token_service


# ============== Request/Response Models ==============

class ConfigurationUpdateRequest(BaseModel):
    """Request to set a parameter by its type ID."""
    type_id: int = Field(validation_alias=AliasChoices("typeId", "type_id", "configurationTypeId"))
    value: str = Field(validation_alias=AliasChoices("value", "configValue"))


class ConfigurationValueRequest(BaseModel):
    """Request body carrying only a value."""
    value: str


class ConfigurationResponse(BaseModel):
    """A stored parameter."""
    id: int
    key: str
    type_id: int
    description: Optional[str]
    value: str
    active: bool
    created_at: datetime
    updated_at: datetime


class PasswordPolicyResponse(BaseModel):
    """The resolved password policy."""
    pattern: str
    min_length: int
    max_length: int
    min_uppercase: int
    min_lowercase: int
    min_digits: int
    min_special: int
    allowed_special: str


def _to_response(view: ParameterView) -> ConfigurationResponse:
    return ConfigurationResponse(
        id=view.id,
        key=view.key,
        type_id=view.type_id,
        description=view.description,
        value=view.value,
        active=view.active,
        created_at=view.created_at,
        updated_at=view.updated_at,
    )


def _service() -> ConfigurationService:
    if not _configuration_service:
        raise HTTPException(status_code=503, detail="Service not configured")
    return _configuration_service


# ============== Auth Dependency ==============

async def require_auth(request: Request):
    """Dependency to require an authenticated user."""
    if not _token_service:
        raise HTTPException(status_code=503, detail="Service not configured")

    authorization = request.headers.get("Authorization")
    token = _token_service.extract_token_from_header(authorization)

    if not token:
        raise InvalidCredentials("missing or invalid token")

    subject = _token_service.verify_token(token)
    if not subject:
        raise InvalidCredentials("invalid or expired token")

    request.state.subject = subject


# ============== Configuration Routes ==============

@router.get("/api/configurations", response_model=List[ConfigurationResponse], dependencies=[Depends(require_auth)])
async def list_configurations():
    """
    List all active parameters.
    """
    views = await _service().get_all()
    return [_to_response(view) for view in views]


@router.get("/api/configurations/{key}", response_model=ConfigurationResponse, dependencies=[Depends(require_auth)])
async def get_configuration(key: str):
    """
    Get the active parameter for a key.
    """
    return _to_response(await _service().get_by_key(key))


@router.put("/api/configurations", response_model=ConfigurationResponse, dependencies=[Depends(require_auth)])
async def update_configuration(body: ConfigurationUpdateRequest):
    """
    Set a parameter identified by its type ID.
    """
    view = await _service().upsert_by_type_id(body.type_id, body.value)
    return _to_response(view)


@router.put("/api/configurations/{key}", response_model=ConfigurationResponse, dependencies=[Depends(require_auth)])
async def update_configuration_by_key(
    key: str,
    value: Optional[str] = None,
    body: Optional[ConfigurationValueRequest] = None,
):
    """
    Set a parameter by key, creating it if needed.

    The value comes from the request body when present, else from the query.
    """
    new_value = body.value if body is not None else value
    if new_value is None:
        raise HTTPException(status_code=400, detail="value is required")

    view = await _service().upsert_by_key(key, new_value)
    return _to_response(view)


@router.put("/api/configurations/{key}/value", response_model=ConfigurationResponse, dependencies=[Depends(require_auth)])
async def update_configuration_value(key: str, body: ConfigurationValueRequest):
    """
    Set a parameter by key with the value in the request body.
    """
    view = await _service().upsert_by_key(key, body.value)
    return _to_response(view)


# ============== Password Policy ==============

@router.get("/api/password-policy", response_model=PasswordPolicyResponse, dependencies=[Depends(require_auth)])
async def get_password_policy():
    """
    Get the compiled password policy and its pattern.
    """
    pattern, policy = await _service().describe_policy()
    return PasswordPolicyResponse(
        pattern=pattern,
        min_length=policy.min_length,
        max_length=policy.max_length,
        min_uppercase=policy.min_uppercase,
        min_lowercase=policy.min_lowercase,
        min_digits=policy.min_digits,
        min_special=policy.min_special,
        allowed_special="".join(sorted(policy.allowed_special)),
    )
