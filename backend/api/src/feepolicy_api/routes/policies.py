"""Policy endpoints for reading, editing, exporting and tuning policies.

Provides REST endpoints for:
- Reading the active policy of a facility (default policy if none stored)
- Manual policy edits (recorded in the adjustment ledger)
- Exporting the active policy as JSON or CSV
- Reviewing cancellation records and committing the resulting proposal

Review is advisory; only commit changes the active policy.
"""

from fastapi import APIRouter, Depends, Query, Response

from feepolicy.models import ExportFormat, PolicyReview
from feepolicy.services.fee_resolver import describe_policy
from feepolicy.services.interchange import policies_to_csv, policy_to_json
from feepolicy.services.policy_service import PolicyService
from feepolicy_api.dependencies import get_policy_service
from feepolicy_api.models.common import ERROR_RESPONSES
from feepolicy_api.models.policies import (
    PolicyCommitRequest,
    PolicyCommitResponse,
    PolicyResponse,
    PolicyReviewRequest,
    PolicyUpdateRequest,
)

router = APIRouter(tags=["policies"])


def _policy_response(service: PolicyService, facility_id: str) -> PolicyResponse:
    policy = service.get_policy(facility_id)
    return PolicyResponse(
        policy=policy,
        summary=describe_policy(policy),
        is_default=policy.version == 0,
    )


@router.get(
    "/facilities/{facility_id}/policy",
    summary="Get active policy",
    description="""
Get the cancellation policy currently applied to a facility.

Facilities without a stored policy get the standard default policy
(24h: no fee, 12h: 30%, under 12h: 100%) at version 0.
""",
    response_model=PolicyResponse,
)
async def get_policy(
    facility_id: str,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyResponse:
    return _policy_response(service, facility_id)


@router.put(
    "/facilities/{facility_id}/policy",
    summary="Edit policy",
    description="""
Replace a facility's policy by hand.

The change is written to the adjustment ledger (source "manual") before
it becomes active. `expected_version` must match the active version.
""",
    response_model=PolicyCommitResponse,
    responses=ERROR_RESPONSES,
)
async def update_policy(
    facility_id: str,
    request: PolicyUpdateRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyCommitResponse:
    entry = service.update_policy(
        facility_id,
        request.policy,
        reason=request.reason,
        expected_version=request.expected_version,
    )
    return PolicyCommitResponse(committed=True, policy=entry.new_policy, adjustment=entry)


@router.get(
    "/facilities/{facility_id}/policy/export",
    summary="Export policy",
    description="Export the active policy as JSON or as CSV (one row per rule).",
    response_class=Response,
    responses={
        200: {
            "content": {"application/json": {}, "text/csv": {}},
            "description": "Exported policy",
        }
    },
)
async def export_policy(
    facility_id: str,
    format: ExportFormat = Query(default=ExportFormat.JSON, description="json or csv"),
    service: PolicyService = Depends(get_policy_service),
) -> Response:
    policy = service.get_policy(facility_id)
    if format == ExportFormat.CSV:
        return Response(
            content=policies_to_csv([policy]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{facility_id}-policy.csv"'
            },
        )
    return Response(content=policy_to_json(policy), media_type="application/json")


@router.post(
    "/facilities/{facility_id}/policy/review",
    summary="Review policy",
    description="""
Aggregate cancellation records and propose an adjusted policy.

Nothing is persisted. Send the returned proposal to the commit endpoint
to activate it. Malformed records are excluded and counted in
`stats.excluded_records`.
""",
    response_model=PolicyReview,
    responses=ERROR_RESPONSES,
)
async def review_policy(
    facility_id: str,
    request: PolicyReviewRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyReview:
    return service.review(
        facility_id,
        request.records,
        total_reservations=request.total_reservations,
        strategy=request.strategy,
        period=request.period,
    )


@router.post(
    "/facilities/{facility_id}/policy/commit",
    summary="Commit proposal",
    description="""
Activate a proposal returned by the review endpoint.

Unchanged proposals are accepted and change nothing. A proposal computed
from an outdated policy version is rejected with 409; review again and
retry.
""",
    response_model=PolicyCommitResponse,
    responses=ERROR_RESPONSES,
)
async def commit_policy(
    facility_id: str,
    request: PolicyCommitRequest,
    service: PolicyService = Depends(get_policy_service),
) -> PolicyCommitResponse:
    entry = service.commit(facility_id, request.proposal)
    if entry is None:
        return PolicyCommitResponse(committed=False, policy=service.get_policy(facility_id))
    return PolicyCommitResponse(committed=True, policy=entry.new_policy, adjustment=entry)
