"""
API request and response models for ResourceMap REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in resources/models.py
and auth/models.py, which own the internal domain representation. Route
handlers map between the two.

Note there is no role field on any user request model and no owner field on
the self-service resource models. Those values are set server side only.
"""

from datetime import date
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt only reads the first 72 bytes of its input; newer releases reject longer input.
BCRYPT_MAX_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


PasswordStr = Annotated[str, Field(min_length=1, max_length=72), AfterValidator(_check_password_bytes)]


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    """Envelope for mutations: a human message plus the affected record."""

    message: str
    data: Any = None


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class LocationIn(BaseModel):
    # Range checks happen in core.geo so every entry point reports them the same way.
    lat: float
    lng: float


class ResourceUpdate(BaseModel):
    """Body for PUT /resources/{id}. Unknown fields, including owner, are rejected."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    weight: Optional[float] = Field(default=None, gt=0)
    birthdate: Optional[date] = None
    location: Optional[LocationIn] = None

    @field_validator("name", "weight", "birthdate", "location", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        """Omitting a field leaves it unchanged; sending null for it is an error."""
        if value is None:
            raise ValueError("Field may not be null")
        return value

    def to_changes(self) -> dict[str, Any]:
        """Map set fields to ResourceStore column names."""
        data = self.model_dump(exclude_unset=True, exclude={"location", "owner"})
        if "birthdate" in data and data["birthdate"] is not None:
            data["birthdate"] = data["birthdate"].isoformat()
        if self.location is not None:
            data["latitude"] = self.location.lat
            data["longitude"] = self.location.lng
        return data


class AdminResourceUpdate(ResourceUpdate):
    """Body for PUT /resources/admin/{id}. owner transfers the resource."""

    owner: Optional[int] = Field(default=None, gt=0)

    def to_changes(self) -> dict[str, Any]:
        data = super().to_changes()
        if self.owner is not None:
            data["owner_id"] = self.owner
        return data


class OwnerOut(BaseModel):
    id: int
    user_name: Optional[str] = None
    email: Optional[str] = None


class ResourceOut(BaseModel):
    id: int
    name: str
    weight: Optional[float] = None
    birthdate: Optional[str] = None
    filename: Optional[str] = None
    location: dict
    owner: OwnerOut
    created_at: str


# ---------------------------------------------------------------------------
# Users and auth
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Registration body. A role sent by the client is ignored."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: PasswordStr


class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: Optional[PasswordStr] = None


class UserOut(BaseModel):
    id: int
    user_name: str
    email: str
    created_at: Optional[str] = None


class LoginRequest(BaseModel):
    user_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
