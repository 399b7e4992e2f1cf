"""Application submission and status endpoints."""

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hiring_api.config.database import get_db
from hiring_api.schemas.applications import ApplicationCreate, ApplicationCreated, ApplicationResponse
from hiring_api.schemas.base import ErrorResponse
from hiring_api.services.applications import ApplicationService

logger = structlog.get_logger()
router = APIRouter()


@router.post(
    "",
    response_model=ApplicationCreated,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_application(
    data: ApplicationCreate,
    db: Session = Depends(get_db),
) -> ApplicationCreated:
    """
    Submit an application.

    Creates the application in `pending` status and enqueues its match
    analysis in the same transaction. A candidate can apply to a job
    posting only once.
    """
    application, job = ApplicationService(db).create_application(data.candidate_id, data.job_posting_id)
    return ApplicationCreated(id=application.id, status=application.status, queue_job_id=job.id)


@router.get(
    "/{application_id}",
    response_model=ApplicationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_application(
    application_id: int,
    db: Session = Depends(get_db),
) -> ApplicationResponse:
    """Get an application with its analysis status and result."""
    application = ApplicationService(db).get_application(application_id)
    return ApplicationResponse.model_validate(application)
