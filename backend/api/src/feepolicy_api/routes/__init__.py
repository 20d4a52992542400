"""API routes package.

Routers are organized by domain:

- policies: Active policy, manual edits, export, review and commit
- fees: Cancellation fee quotes
- adjustments: Adjustment ledger

All routers are registered in main.py with /api prefix.
"""

from feepolicy_api.routes.adjustments import router as adjustments_router
from feepolicy_api.routes.fees import router as fees_router
from feepolicy_api.routes.policies import router as policies_router

__all__ = [
    "adjustments_router",
    "fees_router",
    "policies_router",
]
