"""Policy service: the propose/commit transaction around the pure engine.

The resolver, aggregator and strategies are pure. This service owns the
one piece of shared mutable state, the active policy per facility, and
activates a new policy together with its ledger entry, never one without
the other.
"""

import datetime as dt
import threading
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from feepolicy.config import EngineSettings
from feepolicy.models import (
    AdjustmentSource,
    CancellationPolicy,
    CancellationRecord,
    ConfigurationError,
    ConflictError,
    EvaluationPeriod,
    FeeQuote,
    PolicyAdjustmentRecord,
    PolicyProposal,
    PolicyReview,
    default_policy,
    load_policy,
    validate_policy,
)
from feepolicy.utils.logging import get_logger, log_policy_operation

from .adjustment import AdjustmentStrategy, get_strategy, recommend
from .fee_resolver import resolve_fee
from .ledger import AdjustmentLedger
from .policy_repository import PolicyRepository
from .statistics import aggregate, filter_window

logger = get_logger(__name__)


class PolicyService:
    """Reads, reviews and commits facility cancellation policies."""

    def __init__(
        self,
        repository: PolicyRepository,
        ledger: AdjustmentLedger,
        settings: EngineSettings | None = None,
    ) -> None:
        self.repository = repository
        self.ledger = ledger
        self.settings = settings or EngineSettings()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, facility_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(facility_id, threading.Lock())

    def get_policy(self, facility_id: str) -> CancellationPolicy:
        """Active policy of a facility, or the standard default (version 0)."""
        return self.repository.get(facility_id) or default_policy(facility_id)

    def quote_fee(
        self,
        facility_id: str,
        amount: int | float | Decimal,
        reservation_time: dt.datetime,
        now: dt.datetime | None = None,
    ) -> FeeQuote:
        """Quote the cancellation fee for a reservation of a facility."""
        policy = self.get_policy(facility_id)
        quote = resolve_fee(amount, reservation_time, policy, now=now)
        logger.debug(
            "Quoted fee %d for facility %s (notice %.2fh, matched=%s)",
            quote.fee,
            facility_id,
            quote.notice_hours,
            quote.matched,
        )
        return quote

    def resolve_strategy(
        self, facility_id: str, strategy: str | AdjustmentStrategy | None = None
    ) -> AdjustmentStrategy:
        """Pick the strategy for a facility.

        An explicit instance or name wins, then the per-facility mapping,
        then the configured default.
        """
        if strategy is not None and not isinstance(strategy, str):
            return strategy
        name = strategy or self.settings.facility_strategies.get(
            facility_id, self.settings.default_strategy
        )
        return get_strategy(name, self.settings)

    def review(
        self,
        facility_id: str,
        records: Iterable[CancellationRecord | Mapping[str, Any]],
        total_reservations: int | None = None,
        strategy: str | AdjustmentStrategy | None = None,
        period: EvaluationPeriod | str | None = None,
        now: dt.datetime | None = None,
    ) -> PolicyReview:
        """Aggregate a record window and propose an adjusted policy.

        Nothing is persisted; pass the proposal to commit() to apply it.

        Args:
            facility_id: Facility under review
            records: Cancellation records for the evaluation window
            total_reservations: Reservations made in the window, if known
            strategy: Strategy name or instance overriding the configured one
            period: Optional look-back window applied to the records first
            now: End of the look-back window (defaults to the current time)

        Returns:
            PolicyReview with statistics, proposal and recommendations
        """
        policy = self.get_policy(facility_id)
        chosen = self.resolve_strategy(facility_id, strategy)
        if period is not None:
            records = filter_window(records, period, now=now)
        stats = aggregate(records, policy, total_reservations)
        proposal = chosen.propose(policy, stats)

        log_policy_operation(
            logger,
            "review_policy",
            facility_id=facility_id,
            policy_version=policy.version,
            strategy=chosen.name,
            changed=proposal.changed,
            cancellations=stats.total_cancellations,
        )
        return PolicyReview(
            facility_id=facility_id,
            stats=stats,
            proposal=proposal,
            recommendations=recommend(stats, self.settings.adjustment),
        )

    def commit(
        self, facility_id: str, proposal: PolicyProposal
    ) -> PolicyAdjustmentRecord | None:
        """Activate a proposal.

        Unchanged proposals are a no-op and write nothing.

        Returns:
            The ledger entry, or None when the proposal changes nothing

        Raises:
            ConflictError: If the active policy moved past proposal.base_version
            ConfigurationError: If the proposed policy is invalid or belongs
                to another facility
        """
        if not proposal.changed:
            log_policy_operation(
                logger,
                "commit_policy",
                facility_id=facility_id,
                policy_version=proposal.base_version,
                strategy=proposal.strategy,
                changed=False,
            )
            return None

        validate_policy(proposal.proposed_policy)
        self._check_facility(facility_id, proposal.proposed_policy)
        with self._lock_for(facility_id):
            current = self.get_policy(facility_id)
            self._check_version(facility_id, current, proposal.base_version)
            return self._activate(
                facility_id,
                current,
                proposal.proposed_policy,
                reason="\n".join(proposal.reasons),
                source=AdjustmentSource.AUTOMATIC,
                strategy=proposal.strategy,
            )

    def update_policy(
        self,
        facility_id: str,
        policy: CancellationPolicy | Mapping[str, Any],
        reason: str,
        expected_version: int,
    ) -> PolicyAdjustmentRecord:
        """Administrative edit of a facility's policy.

        Raises:
            ConflictError: If the active version differs from expected_version
            ConfigurationError: If the new policy is invalid
        """
        candidate = load_policy(policy)
        self._check_facility(facility_id, candidate)
        with self._lock_for(facility_id):
            current = self.get_policy(facility_id)
            self._check_version(facility_id, current, expected_version)
            return self._activate(
                facility_id,
                current,
                candidate,
                reason=reason,
                source=AdjustmentSource.MANUAL,
                strategy=None,
            )

    def history(self, facility_id: str | None = None) -> list[PolicyAdjustmentRecord]:
        return self.ledger.history(facility_id)

    @staticmethod
    def _check_facility(facility_id: str, policy: CancellationPolicy) -> None:
        if policy.facility_id != facility_id:
            raise ConfigurationError(
                {
                    "facility_id": facility_id,
                    "reason": f"policy belongs to facility {policy.facility_id}",
                }
            )

    @staticmethod
    def _check_version(
        facility_id: str, current: CancellationPolicy, expected_version: int
    ) -> None:
        if current.version != expected_version:
            log_policy_operation(
                logger,
                "commit_policy",
                facility_id=facility_id,
                policy_version=current.version,
                error=f"stale version {expected_version}",
            )
            raise ConflictError(
                {
                    "facility_id": facility_id,
                    "expected_version": str(expected_version),
                    "actual_version": str(current.version),
                }
            )

    def _activate(
        self,
        facility_id: str,
        current: CancellationPolicy,
        candidate: CancellationPolicy,
        reason: str,
        source: AdjustmentSource,
        strategy: str | None,
    ) -> PolicyAdjustmentRecord:
        """Store the policy as version + 1 together with its ledger entry."""
        new_policy = candidate.model_copy(
            update={
                "facility_id": facility_id,
                "version": current.version + 1,
                "created_at": current.created_at,
                "updated_at": dt.datetime.now(dt.UTC),
            },
            deep=True,
        )
        entry = self.ledger.record_activation(
            facility_id,
            current,
            new_policy,
            reason,
            repository=self.repository,
            source=source,
            strategy=strategy,
        )

        log_policy_operation(
            logger,
            "commit_policy",
            facility_id=facility_id,
            policy_version=new_policy.version,
            strategy=strategy,
            changed=True,
            source=source.value,
        )
        return entry
