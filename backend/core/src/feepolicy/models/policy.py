"""Cancellation policy and fee rule models.

A policy is an ordered list of tiers. Each tier names the minimum notice
(in whole hours before the reservation) it requires and the fee percentage
charged when it applies. Rules are kept sorted by descending threshold; the
order is part of the policy's meaning and is preserved by every serializer.
"""

import datetime as dt
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

DEFAULT_POLICY_ID = "default"
MAX_FEE_PERCENTAGE = 100
MIN_FEE_PERCENTAGE = 0


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class CancellationRule(BaseModel):
    """One tier of a cancellation fee schedule."""

    model_config = ConfigDict(frozen=True)

    hours_before_reservation: int = Field(
        ...,
        ge=0,
        description="Minimum notice in whole hours required for this tier",
        examples=[24],
    )
    fee_percentage: int = Field(
        ...,
        ge=MIN_FEE_PERCENTAGE,
        le=MAX_FEE_PERCENTAGE,
        description="Fee charged as a percentage of the reservation amount",
        examples=[30],
    )
    description: str = Field(default="", description="Human-readable tier text")


class CancellationPolicy(BaseModel):
    """A facility's cancellation fee policy."""

    policy_id: str = Field(..., description="Unique policy ID")
    facility_id: str = Field(..., description="Facility owning this policy")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Display description")
    rules: list[CancellationRule] = Field(
        ...,
        min_length=1,
        description="Fee tiers sorted by descending hours_before_reservation",
    )
    restrictions: list[str] = Field(
        default_factory=list,
        description="Additional restriction texts shown with the policy",
    )
    version: int = Field(
        default=0,
        ge=0,
        description="Commit counter used for optimistic concurrency",
    )
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    @field_validator("rules")
    @classmethod
    def _sort_and_check_thresholds(
        cls, rules: list[CancellationRule]
    ) -> list[CancellationRule]:
        ordered = sorted(rules, key=lambda r: r.hours_before_reservation, reverse=True)
        thresholds = [r.hours_before_reservation for r in ordered]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("rules must not share the same hours_before_reservation")
        return ordered

    def rule_at(self, hours_before_reservation: int) -> CancellationRule | None:
        """Return the rule keyed at an exact threshold, if any."""
        for rule in self.rules:
            if rule.hours_before_reservation == hours_before_reservation:
                return rule
        return None


def validate_policy(policy: CancellationPolicy) -> None:
    """Check the invariants a policy must satisfy before it is used.

    Policies built through the model constructor already satisfy these;
    this guards against instances created with model_construct() or
    mutated after validation.

    Raises:
        ConfigurationError: If the rule list is empty, unsorted, has
            duplicate thresholds or a fee outside [0, 100].
    """
    rules = policy.rules
    if not rules:
        raise ConfigurationError({"policy_id": policy.policy_id, "reason": "empty rule list"})

    previous: int | None = None
    for index, rule in enumerate(rules):
        if not MIN_FEE_PERCENTAGE <= rule.fee_percentage <= MAX_FEE_PERCENTAGE:
            raise ConfigurationError(
                {
                    "policy_id": policy.policy_id,
                    "rule_index": str(index),
                    "reason": f"fee_percentage {rule.fee_percentage} outside 0-100",
                }
            )
        if rule.hours_before_reservation < 0:
            raise ConfigurationError(
                {
                    "policy_id": policy.policy_id,
                    "rule_index": str(index),
                    "reason": "negative hours_before_reservation",
                }
            )
        if previous is not None and rule.hours_before_reservation >= previous:
            raise ConfigurationError(
                {
                    "policy_id": policy.policy_id,
                    "rule_index": str(index),
                    "reason": "rules must be unique and in descending threshold order",
                }
            )
        previous = rule.hours_before_reservation


def load_policy(data: Mapping[str, Any] | CancellationPolicy) -> CancellationPolicy:
    """Build a validated policy from untrusted data.

    Args:
        data: Mapping (e.g. decoded JSON or a storage item) or a policy

    Returns:
        Validated CancellationPolicy with rules in descending order

    Raises:
        ConfigurationError: If the data does not describe a usable policy
    """
    if isinstance(data, CancellationPolicy):
        validate_policy(data)
        return data
    try:
        return CancellationPolicy.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            {"field": location or "policy", "reason": first.get("msg", str(e))}
        ) from e


# Built-in policies

_STANDARD_RULES = [
    CancellationRule(
        hours_before_reservation=24,
        fee_percentage=0,
        description="Full refund when cancelled at least 24 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=12,
        fee_percentage=30,
        description="30% fee when cancelled at least 12 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=0,
        fee_percentage=100,
        description="Full fee when cancelled within 12 hours of the reservation",
    ),
]

_PREMIUM_RULES = [
    CancellationRule(
        hours_before_reservation=48,
        fee_percentage=0,
        description="Full refund when cancelled at least 48 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=24,
        fee_percentage=20,
        description="20% fee when cancelled at least 24 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=12,
        fee_percentage=50,
        description="50% fee when cancelled at least 12 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=0,
        fee_percentage=100,
        description="Full fee when cancelled within 12 hours of the reservation",
    ),
]

_FLEXIBLE_RULES = [
    CancellationRule(
        hours_before_reservation=12,
        fee_percentage=0,
        description="Full refund when cancelled at least 12 hours before the reservation",
    ),
    CancellationRule(
        hours_before_reservation=0,
        fee_percentage=50,
        description="50% fee when cancelled within 12 hours of the reservation",
    ),
]

POLICY_TEMPLATES: dict[str, tuple[str, str, list[CancellationRule]]] = {
    "standard": (
        "Standard cancellation policy",
        "Full refund up to 24 hours before the reservation; fees apply afterwards.",
        _STANDARD_RULES,
    ),
    "premium": (
        "Premium cancellation policy",
        "Full refund up to 48 hours before the reservation; graduated fees afterwards.",
        _PREMIUM_RULES,
    ),
    "flexible": (
        "Flexible cancellation policy",
        "Full refund up to 12 hours before the reservation; a fixed 50% fee afterwards.",
        _FLEXIBLE_RULES,
    ),
}


def policy_from_template(
    template: str,
    facility_id: str,
    policy_id: str | None = None,
) -> CancellationPolicy:
    """Create a new policy for a facility from a built-in template.

    Raises:
        ConfigurationError: If the template name is unknown
    """
    if template not in POLICY_TEMPLATES:
        raise ConfigurationError({"template": template, "reason": "unknown template"})
    name, description, rules = POLICY_TEMPLATES[template]
    return CancellationPolicy(
        policy_id=policy_id or f"{facility_id}-{template}",
        facility_id=facility_id,
        name=name,
        description=description,
        rules=list(rules),
    )


def default_policy(facility_id: str = DEFAULT_POLICY_ID) -> CancellationPolicy:
    """Standard policy used for facilities without a configured one."""
    return policy_from_template("standard", facility_id, policy_id=DEFAULT_POLICY_ID)
