"""Adjustment ledger endpoint."""

from fastapi import APIRouter, Depends, Query

from feepolicy.services.policy_service import PolicyService
from feepolicy_api.dependencies import get_policy_service
from feepolicy_api.models.policies import AdjustmentHistoryResponse

router = APIRouter(tags=["adjustments"])


@router.get(
    "/adjustments",
    summary="List policy adjustments",
    description="Ledger of automatic and manual policy changes, oldest first.",
    response_model=AdjustmentHistoryResponse,
)
async def list_adjustments(
    facility_id: str | None = Query(default=None, description="Only this facility"),
    service: PolicyService = Depends(get_policy_service),
) -> AdjustmentHistoryResponse:
    adjustments = service.history(facility_id)
    return AdjustmentHistoryResponse(adjustments=adjustments, count=len(adjustments))
