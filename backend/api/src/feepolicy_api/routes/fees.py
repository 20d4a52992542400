"""Fee quote endpoint.

All amounts are in minor currency units (e.g. 10000 = 100.00).
"""

from fastapi import APIRouter, Depends

from feepolicy.services.policy_service import PolicyService
from feepolicy_api.dependencies import get_policy_service
from feepolicy_api.models.common import ERROR_RESPONSES
from feepolicy_api.models.policies import FeeQuoteRequest, FeeQuoteResponse

router = APIRouter(tags=["fees"])


@router.post(
    "/facilities/{facility_id}/fee-quote",
    summary="Quote cancellation fee",
    description="""
Calculate the fee owed for cancelling a reservation.

**Notes:**
- The tier with the largest threshold not above the notice applies
- Notice above every threshold costs nothing (`matched` is false)
- Fees are rounded down
""",
    response_model=FeeQuoteResponse,
    responses=ERROR_RESPONSES,
)
async def quote_fee(
    facility_id: str,
    request: FeeQuoteRequest,
    service: PolicyService = Depends(get_policy_service),
) -> FeeQuoteResponse:
    quote = service.quote_fee(
        facility_id,
        request.amount,
        request.reservation_time,
        now=request.cancelled_at,
    )
    return FeeQuoteResponse(
        facility_id=facility_id,
        policy_id=quote.policy_id,
        policy_version=quote.policy_version,
        fee=quote.fee,
        fee_percentage=quote.rule.fee_percentage,
        hours_before_reservation=quote.rule.hours_before_reservation,
        notice_hours=quote.notice_hours,
        matched=quote.matched,
        rule_description=quote.rule.description,
    )
