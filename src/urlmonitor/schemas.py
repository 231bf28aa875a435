from datetime import datetime
from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

Environment = Literal["testing", "production"]


# --- Auth Schemas ---

class AdminResponse(BaseModel):
    id: int
    username: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    message: str
    user: AdminResponse


class SessionResponse(BaseModel):
    authenticated: bool
    username: Optional[str] = None


# --- Target Schemas ---

def _validate_address(v: str) -> str:
    v = v.strip()
    if len(v) > 2048:
        raise ValueError("URL must be at most 2048 characters")
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("URL must be an absolute http:// or https:// address")
    if not parsed.hostname:
        raise ValueError("URL must include a host")
    return v


def _validate_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    if len(v) > 255:
        raise ValueError("Name must be at most 255 characters")
    return v


class TargetCreate(BaseModel):
    address: str
    name: str
    environment: Environment = "testing"

    @field_validator("address")
    @classmethod
    def address_valid(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("name")
    @classmethod
    def name_valid(cls, v: str) -> str:
        return _validate_name(v)


class TargetUpdate(TargetCreate):
    pass


class TargetResponse(BaseModel):
    id: int
    address: str
    name: str
    environment: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OutcomeResponse(BaseModel):
    id: Optional[int] = None
    target_id: int
    status_code: Optional[int] = None
    status_text: Optional[str] = None
    response_time_ms: Optional[int] = None
    is_up: bool
    is_redirect: bool
    location: Optional[str] = None
    error_message: Optional[str] = None
    checked_at: datetime

    model_config = {"from_attributes": True}


class ArchiveEntryResponse(OutcomeResponse):
    archived_at: datetime


class TargetWithStatus(TargetResponse):
    latest_outcome: Optional[OutcomeResponse] = None
    uptime_percentage: float


class TargetDetail(BaseModel):
    target: TargetResponse
    outcomes: list[OutcomeResponse]
    uptime_percentage: float


# --- Sweep Schemas ---

class SweepResultResponse(BaseModel):
    target_id: int
    name: str
    address: str
    environment: str
    outcome: OutcomeResponse
    recorded: bool
    needs_alternate_check: bool
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result) -> "SweepResultResponse":
        return cls(
            target_id=result.target.id,
            name=result.target.name,
            address=result.target.address,
            environment=result.target.environment,
            outcome=OutcomeResponse.model_validate(result.outcome),
            recorded=result.recorded,
            needs_alternate_check=result.needs_alternate_check,
            error=result.error,
        )


class SweepResponse(BaseModel):
    results: list[SweepResultResponse]
    total: int
    pending_alternate_checks: int


class TargetCreated(TargetResponse):
    message: str
    check: Optional[SweepResultResponse] = None


class AlternateCheckResult(BaseModel):
    """Body posted by the browser-side probe. Accepts camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    target_id: int = Field(alias="targetId")
    is_up: bool = Field(alias="isUp")
    response_time_ms: Optional[int] = Field(default=None, alias="responseTime")
    status_code: Optional[int] = Field(default=None, alias="statusCode", ge=100, le=999)
    error_message: Optional[str] = Field(default=None, alias="errorMessage")

    @field_validator("response_time_ms")
    @classmethod
    def response_time_valid(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Response time cannot be negative")
        return v

    @field_validator("error_message")
    @classmethod
    def error_message_trimmed(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()[:1000] or None
        return v


# --- Archive Schemas ---

class ArchiveRunResponse(BaseModel):
    success: bool
    message: str
    archived: int
    deleted: int


class ArchiveStatusResponse(BaseModel):
    records_to_archive: int
    total_archived: int
