"""
Merit Badge Counselor Backend — Pydantic Request/Response Schemas
==================================================================

What:  Pydantic models defining the API contract between the form and the backend.
Why:   Field validation with form-friendly messages, and typed response envelopes.
How:   The submit route feeds raw form values into `ApplicationForm`; a failed
       validation is flattened by `field_errors()` into the `errors` list of the
       400 envelope. Response models serialize with the camelCase aliases the
       browser client reads (applicationId, badgesToCounsel, ...).

Design Decision:
    Form fields are declared as loose inputs (strings or None) and every rule is
    a `mode="before"` validator raising `PydanticCustomError`, so each message
    reads exactly like the form label ("Age must be at least 18") instead of a
    generic pydantic type error.
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

VOLUNTEER_CHOICES = ("Yes", "No")

MIN_AGE = 18
MAX_AGE = 120
_AGE_DIGITS = re.compile(r"[0-9]+")

PURPOSE_BECOME_COUNSELOR = "Become a Counselor"
PURPOSE_CHANGE_BADGES = "Change/Add Badges"
PURPOSE_DROP_BADGES = "Drop Badges"
PURPOSE_UPDATE_CERTIFICATIONS = "Update Certifications"

PURPOSES = (
    PURPOSE_BECOME_COUNSELOR,
    PURPOSE_CHANGE_BADGES,
    PURPOSE_DROP_BADGES,
    PURPOSE_UPDATE_CERTIFICATIONS,
)


def _clean(value: Any) -> Optional[str]:
    """Trim a raw form value; blank or missing becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _required(value: Any, message: str) -> str:
    cleaned = _clean(value)
    if cleaned is None:
        raise PydanticCustomError("required", message)
    return cleaned


def parse_badge_list(raw: Any) -> List[str]:
    """
    Decode a badge selection sent as a JSON-encoded array string.

    Malformed JSON, non-array JSON and non-string entries degrade to an
    empty list / are dropped; this never fails the request.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, tuple)):
        items = raw
    else:
        try:
            items = json.loads(raw)
        except (TypeError, ValueError):
            return []
    if not isinstance(items, list):
        return []
    names = []
    for item in items:
        if isinstance(item, str) and item.strip():
            names.append(item.strip())
    return names


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the form posts
# ══════════════════════════════════════════════════════════════════════════


class ApplicationForm(BaseModel):
    """
    Validated text fields of a submission (files are handled by the upload gate).

    Field order matters: `bsaMemberId` and `district` look at the already
    validated `isVolunteer` value.
    """

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName", validate_default=True)
    last_name: Optional[str] = Field(default=None, alias="lastName", validate_default=True)
    age: Optional[int] = Field(default=None, validate_default=True)
    phone: Optional[str] = None
    email: Optional[str] = Field(default=None, validate_default=True)
    is_volunteer: Optional[str] = Field(default=None, alias="isVolunteer", validate_default=True)
    bsa_member_id: Optional[str] = Field(default=None, alias="bsaMemberId", validate_default=True)
    district: Optional[str] = Field(default=None, validate_default=True)
    purpose: Optional[str] = Field(default=None, validate_default=True)
    qualifications: Optional[str] = None
    additional_info: Optional[str] = Field(default=None, alias="additionalInfo")
    badges_to_counsel: List[str] = Field(default_factory=list, alias="badgesToCounsel")
    badges_to_drop: List[str] = Field(default_factory=list, alias="badgesToDrop")

    @field_validator("first_name", mode="before")
    @classmethod
    def validate_first_name(cls, v: Any) -> str:
        return _required(v, "First name is required")

    @field_validator("last_name", mode="before")
    @classmethod
    def validate_last_name(cls, v: Any) -> str:
        return _required(v, "Last name is required")

    @field_validator("age", mode="before")
    @classmethod
    def validate_age(cls, v: Any) -> int:
        cleaned = _clean(v)
        # ASCII digits only: int() also takes "+19", "1_9" and other scripts' digits
        if cleaned is None or not _AGE_DIGITS.fullmatch(cleaned):
            raise PydanticCustomError("age", "Age must be at least 18")
        if len(cleaned.lstrip("0")) > 3 or int(cleaned) > MAX_AGE:
            raise PydanticCustomError("age", "Please enter a valid age")
        age = int(cleaned)
        if age < MIN_AGE:
            raise PydanticCustomError("age", "Age must be at least 18")
        return age

    @field_validator("email", mode="before")
    @classmethod
    def validate_email_address(cls, v: Any) -> str:
        cleaned = _clean(v)
        if cleaned is None:
            raise PydanticCustomError("email", "Valid email is required")
        try:
            result = validate_email(cleaned, check_deliverability=False)
        except EmailNotValidError:
            raise PydanticCustomError("email", "Valid email is required")
        return result.normalized.lower()

    @field_validator("phone", "qualifications", "additional_info", mode="before")
    @classmethod
    def trim_optional(cls, v: Any) -> Optional[str]:
        return _clean(v)

    @field_validator("is_volunteer", mode="before")
    @classmethod
    def validate_is_volunteer(cls, v: Any) -> str:
        cleaned = _clean(v)
        if cleaned not in VOLUNTEER_CHOICES:
            raise PydanticCustomError(
                "is_volunteer", "Please indicate if you are a BSA volunteer"
            )
        return cleaned

    @field_validator("bsa_member_id", mode="before")
    @classmethod
    def validate_bsa_member_id(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        volunteer = info.data.get("is_volunteer")
        if volunteer == "Yes":
            return _required(v, "BSA member ID is required for BSA volunteers")
        return None

    @field_validator("district", mode="before")
    @classmethod
    def validate_district(cls, v: Any, info: ValidationInfo) -> Optional[str]:
        volunteer = info.data.get("is_volunteer")
        if volunteer == "Yes":
            return _required(v, "District is required for BSA volunteers")
        return None

    @field_validator("purpose", mode="before")
    @classmethod
    def validate_purpose(cls, v: Any) -> str:
        cleaned = _clean(v)
        if cleaned not in PURPOSES:
            raise PydanticCustomError("purpose", "Please select what you would like to do")
        return cleaned

    @field_validator("badges_to_counsel", "badges_to_drop", mode="before")
    @classmethod
    def decode_badges(cls, v: Any) -> List[str]:
        return parse_badge_list(v)

    @property
    def is_bsa_volunteer(self) -> bool:
        return self.is_volunteer == "Yes"


def field_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    """
    Flatten a pydantic ValidationError into the envelope's `errors` list.

    Each entry: {"msg", "param", "location", "value"}.
    """
    errors = []
    for err in exc.errors(include_url=False):
        loc = err.get("loc") or ()
        entry: Dict[str, Any] = {
            "msg": err.get("msg", "Invalid value"),
            "param": str(loc[0]) if loc else None,
            "location": "body",
        }
        value = err.get("input")
        if isinstance(value, (str, int, float, bool)) or value is None:
            entry["value"] = value
        errors.append(entry)
    return errors


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class MeritBadgeOut(BaseModel):
    """One catalog entry for the form's multi-selects."""
    id: int
    name: str

    model_config = {"from_attributes": True}


class MeritBadgeListResponse(BaseModel):
    """Returned by GET /api/applications/merit-badges."""
    success: bool = True
    badges: List[MeritBadgeOut] = Field(description="All merit badges, sorted by name")


class ApplicationCreatedResponse(BaseModel):
    """Returned by POST /api/applications with HTTP 201."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Application submitted successfully"
    application_id: int = Field(alias="applicationId", description="Generated application id")


class CertificationOut(BaseModel):
    """Stored metadata of one uploaded certification file."""
    id: int
    application_id: int
    filename: str
    filepath: str
    file_size: int
    uploaded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ApplicationDetail(BaseModel):
    """
    Full application record: the application row plus badge names and
    certification rows.

    Column fields keep their table names; the three merged collections use
    the camelCase names the form submits.
    """
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    first_name: str
    last_name: str
    age: int
    phone: Optional[str] = None
    email: str
    is_bsa_volunteer: bool
    bsa_member_id: Optional[str] = None
    district: Optional[str] = None
    purpose: str
    qualifications: Optional[str] = None
    additional_info: Optional[str] = None
    created_at: Optional[datetime] = None
    badges_to_counsel: List[str] = Field(default_factory=list, alias="badgesToCounsel")
    badges_to_drop: List[str] = Field(default_factory=list, alias="badgesToDrop")
    certifications: List[CertificationOut] = Field(default_factory=list)


class ApplicationDetailResponse(BaseModel):
    """Returned by GET /api/applications/{id}."""
    success: bool = True
    application: ApplicationDetail


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Envelope for every error response.

    `errors` is present for validation and upload-policy failures only.
    """
    success: bool = False
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[Dict[str, Any]]] = Field(default=None, description="Field-level errors")


class HealthResponse(BaseModel):
    """Health check response for monitoring and load balancers."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
