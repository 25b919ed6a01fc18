"""Quick-capture API routes."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel, Field
import logging

from ....parser import parse_capture_input
from ....services.task_service import CaptureError, TaskService, get_task_service
from ..middleware import require_auth
from ..models import User
from .tasks import created_payload


logger = logging.getLogger(__name__)


class CaptureRequest(BaseModel):
    """Quick-capture text, e.g. ``Call mom /speak #daily``."""
    text: str = Field(..., max_length=500)
    end_date: Optional[date] = None
    today: Optional[date] = None


class PreviewRequest(BaseModel):
    text: str = Field("", max_length=500)
    today: Optional[date] = None


router = APIRouter(prefix="/api/capture", tags=["capture"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def capture(
    body: CaptureRequest,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Create tasks from capture text.

    Raises:
        HTTPException: 400 if the text has no title or the end date is invalid
    """
    try:
        tasks = service.capture(user.id, body.text, end_date=body.end_date, today=body.today)
    except CaptureError as e:
        logger.debug(f"Capture rejected for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                'message': str(e),
                'errors': [err.message for err in e.errors],
                'suggestions': service.parser.suggest_corrections(body.text),
            }
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return created_payload("Task captured", tasks)


@router.post("/preview")
async def preview(
    body: PreviewRequest,
    user: User = Depends(require_auth),
    service: TaskService = Depends(get_task_service)
):
    """Parse capture text without storing anything."""
    parsed, errors, suggestions = parse_capture_input(body.text, service.parser, today=body.today)
    return {
        'draft': parsed.to_dict(),
        'errors': [{'message': e.message, 'severity': e.severity} for e in errors],
        'suggestions': suggestions,
        'completions': service.parser.suggest_completions(body.text),
    }
