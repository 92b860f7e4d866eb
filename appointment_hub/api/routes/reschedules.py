"""Customer reschedule confirmation endpoint."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from appointment_hub.api.dependencies import get_reschedule_resolver
from appointment_hub.scheduling.models import (
    ConfirmationDecision,
    RescheduleChoice,
    RescheduleState,
)
from appointment_hub.scheduling.reschedule import RescheduleResolver

router = APIRouter(prefix="/reschedules")


class ConfirmRequest(BaseModel):
    choice: RescheduleChoice = RescheduleChoice.SUGGESTED
    selected_date: Optional[date] = None
    selected_time: Optional[str] = None


class ConfirmResponse(BaseModel):
    notification_id: str
    state: RescheduleState
    decision: ConfirmationDecision


@router.post("/{notification_id}/confirm", response_model=ConfirmResponse)
async def confirm_reschedule(
    notification_id: str,
    body: ConfirmRequest,
    resolver: RescheduleResolver = Depends(get_reschedule_resolver),
) -> ConfirmResponse:
    """Accept the suggested time or pick an alternative free slot."""
    notification = await resolver.load_request(notification_id)
    decision = await resolver.confirm(
        notification,
        body.choice,
        selected_date=body.selected_date,
        selected_time=body.selected_time or None,
    )
    return ConfirmResponse(notification_id=notification_id, state=decision.state, decision=decision)
