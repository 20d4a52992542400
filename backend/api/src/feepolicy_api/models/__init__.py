"""API-specific request/response models.

Domain models (CancellationPolicy, PolicyProposal, PolicyAdjustmentRecord,
etc.) live in feepolicy.models and are reused here where appropriate.

Modules:
- common: Shared response wrappers
- policies: Policy, fee quote, review and commit request/response models
"""

__all__: list[str] = []
