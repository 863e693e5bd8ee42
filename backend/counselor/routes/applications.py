"""
Merit Badge Counselor Backend — Application Route Handlers
===========================================================

What:  GET  /api/applications/merit-badges   (badge catalog for the form)
       POST /api/applications                (submit a new application)
       GET  /api/applications/{id}           (read one application back)
Why:   Entry points used by the application form.
How:   Parses the multipart form, validates text fields, delegates to the
       services, returns the `{success: ...}` JSON envelope.

Request Flow (POST):
    1. FastAPI parses the multipart body (files spooled to temp storage)
    2. Text fields validated by ApplicationForm → 400 on any failure
    3. ApplicationService.submit(): upload gate → transaction → promote
    4. 201 Created with the generated applicationId

Error responses are produced by the global exception handlers in main.py.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor.database import get_db_session
from counselor.exceptions import FormValidationError, NotFoundError
from counselor.schemas.application import (
    ApplicationCreatedResponse,
    ApplicationDetailResponse,
    ApplicationForm,
    ErrorResponse,
    MeritBadgeListResponse,
    field_errors,
)
from counselor.services.application_service import application_service
from counselor.services.badge_catalog import badge_catalog
from counselor.services.upload_gate import UploadGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/applications", tags=["Applications"])


def get_upload_gate(request: Request) -> UploadGate:
    """The upload gate configured on the app (see create_app)."""
    return request.app.state.upload_gate


@router.get(
    "/merit-badges",
    response_model=MeritBadgeListResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all merit badges",
)
async def list_merit_badges(
    db: AsyncSession = Depends(get_db_session),
) -> MeritBadgeListResponse:
    """Badge catalog sorted by name, used to fill both multi-selects."""
    badges = await badge_catalog.list_all(db)
    return MeritBadgeListResponse(badges=badges)


@router.post(
    "",
    status_code=201,
    response_model=ApplicationCreatedResponse,
    responses={
        201: {"description": "Application stored", "model": ApplicationCreatedResponse},
        400: {"description": "Invalid fields or rejected uploads", "model": ErrorResponse},
        500: {"description": "Database or storage failure", "model": ErrorResponse},
    },
    summary="Submit a merit badge counselor application",
)
async def submit_application(
    first_name: Optional[str] = Form(default=None, alias="firstName"),
    last_name: Optional[str] = Form(default=None, alias="lastName"),
    age: Optional[str] = Form(default=None),
    phone: Optional[str] = Form(default=None),
    email: Optional[str] = Form(default=None),
    is_volunteer: Optional[str] = Form(default=None, alias="isVolunteer"),
    bsa_member_id: Optional[str] = Form(default=None, alias="bsaMemberId"),
    district: Optional[str] = Form(default=None),
    purpose: Optional[str] = Form(default=None),
    qualifications: Optional[str] = Form(default=None),
    additional_info: Optional[str] = Form(default=None, alias="additionalInfo"),
    badges_to_counsel: Optional[str] = Form(default=None, alias="badgesToCounsel"),
    badges_to_drop: Optional[str] = Form(default=None, alias="badgesToDrop"),
    certifications: Optional[List[UploadFile]] = File(
        default=None,
        description="Certification files (max 10, 30MB total, no executables/scripts)",
    ),
    db: AsyncSession = Depends(get_db_session),
    gate: UploadGate = Depends(get_upload_gate),
) -> ApplicationCreatedResponse:
    """
    Validate the form, then store the application with its badges and files.

    Badge selections arrive as JSON-encoded arrays of names; malformed values
    are treated as no selection.
    """
    try:
        try:
            form = ApplicationForm.model_validate(
                {
                    "firstName": first_name,
                    "lastName": last_name,
                    "age": age,
                    "phone": phone,
                    "email": email,
                    "isVolunteer": is_volunteer,
                    "bsaMemberId": bsa_member_id,
                    "district": district,
                    "purpose": purpose,
                    "qualifications": qualifications,
                    "additionalInfo": additional_info,
                    "badgesToCounsel": badges_to_counsel,
                    "badgesToDrop": badges_to_drop,
                }
            )
        except ValidationError as e:
            raise FormValidationError(errors=field_errors(e))

        logger.info(
            "Received application: purpose=%s, files=%d",
            form.purpose,
            len(certifications or []),
        )

        application_id = await application_service.submit(
            db=db,
            form=form,
            uploads=certifications,
            gate=gate,
        )
        return ApplicationCreatedResponse(application_id=application_id)

    finally:
        for upload in certifications or []:
            await upload.close()


@router.get(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    responses={
        404: {"description": "Application not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get one application with its badges and certifications",
)
async def get_application(
    application_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> ApplicationDetailResponse:
    application = await application_service.get_by_id(db, application_id)
    if application is None:
        raise NotFoundError(message="Application not found")
    return ApplicationDetailResponse(application=application)
