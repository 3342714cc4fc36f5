"""Ledger service: the operations exposed by the investment ledger.

The service composes the pure calculators (fees, conversion, aggregation,
eligibility) with the store and the external collaborators:

    create_investment -> commit new record -> invalidate stats
    apply_payment_event -> state machine -> commit -> invalidate stats
    complete_investment -> resolve fee -> commit -> InvestmentCompleted
    compute_conversion -> SAFE terms -> conversion math
    request_withdrawal -> (founder lock) stats + balance + KYC -> gate -> reserve

Campaign aggregates are written with optimistic version checks. A
ConcurrencyConflict is retried with bounded exponential backoff (tenacity)
and surfaced to the caller once attempts are exhausted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Tuple, Union
from uuid import uuid4

import structlog
from pydantic import ValidationError as PydanticValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import LedgerSettings, default_fee_schedule
from ..errors import (
    ConcurrencyConflict,
    EligibilityError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from ..schemas import (
    Campaign,
    CampaignBalance,
    CampaignStats,
    CampaignStatus,
    ConversionResult,
    DomainEvent,
    FeeQuote,
    FeeSchedule,
    FinancingEvent,
    Investment,
    InvestmentCommitted,
    InvestmentCompleted,
    InvestmentStatus,
    InvestmentStatusChanged,
    LiquidityEvent,
    LiquidityPayout,
    PaymentStatus,
    SafeAgreementIssued,
    SafeAgreementSnapshot,
    SafeTerms,
    WithdrawalApproved,
    WithdrawalCompleted,
    WithdrawalPolicy,
    WithdrawalRejected,
    WithdrawalRequest,
    WithdrawalRequested,
    WithdrawalStatus,
)
from .aggregator import StatsCache, compute_campaign_stats, reconcile
from .collaborators import KycService, NotificationSink, RecordingNotificationSink, StaticKycDirectory
from .conversion import convert_safe, liquidity_payout
from .eligibility import check_withdrawal, compute_balance
from .fees import normalize_region, resolve_fee
from .state_machine import INVESTOR_CANCELLABLE, payment_target, validate_transition
from .store import InMemoryLedgerStore, LedgerSnapshot

logger = structlog.get_logger()

# Mutation callback: returns the records to write and the events to emit, or
# None when the request is a no-op against the current state.
InvestmentMutation = Callable[
    [LedgerSnapshot, Investment],
    Optional[Tuple[Investment, List[DomainEvent]]],
]

_AGREEMENT_CORRECTABLE = frozenset({
    "investment_amount",
    "valuation_cap",
    "discount_rate",
    "company_name",
    "investor_name",
    "agreement_date",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:16]}"


def to_decimal(value: Union[Decimal, int, float, str], name: str = "amount") -> Decimal:
    """Parse a money-like value into a finite Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{name} must be a number, got {value!r}") from None
    if not result.is_finite():
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return result


def _pydantic_message(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in exc.errors()
    )


@dataclass
class LedgerReport:
    """Point-in-time copy of the whole ledger for reporting blocks."""

    generated_at: datetime
    campaigns: List[Campaign] = field(default_factory=list)
    investments: List[Investment] = field(default_factory=list)
    withdrawals: List[WithdrawalRequest] = field(default_factory=list)
    stats: Dict[str, CampaignStats] = field(default_factory=dict)
    progress_ceiling: Decimal = Decimal("100")


class LedgerService:
    """Investment ledger and conversion engine.

    Example:
        service = LedgerService(settings=LedgerSettings())
        campaign = service.create_campaign(
            founder_id="founder_alice",
            company_name="Acme Robotics Inc.",
            funding_goal=Decimal("100000"),
            minimum_investment=Decimal("100"),
            valuation_cap=Decimal("5000000"),
            discount_rate=Decimal("20"),
        )
        service.transition_campaign(campaign.id, CampaignStatus.ACTIVE)

        investment_id = service.create_investment(campaign.id, "investor_bob", Decimal("30000"))
        service.apply_payment_event(investment_id, PaymentStatus.PENDING)
        service.apply_payment_event(investment_id, PaymentStatus.PROCESSING)
        service.apply_payment_event(investment_id, PaymentStatus.SUCCEEDED)
        service.complete_investment(investment_id)

        stats = service.get_campaign_stats(campaign.id)
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        store: Optional[InMemoryLedgerStore] = None,
        kyc: Optional[KycService] = None,
        notifications: Optional[NotificationSink] = None,
        fee_schedule: Optional[FeeSchedule] = None,
        withdrawal_policy: Optional[WithdrawalPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or LedgerSettings()
        self.store = store or InMemoryLedgerStore(
            gateway_event_retention=self.settings.gateway_event_retention
        )
        self.kyc = kyc or StaticKycDirectory()
        self.notifications = notifications or RecordingNotificationSink()
        self.clock = clock or _utcnow
        self.stats_cache = StatsCache()

        self._fee_schedules: Dict[str, FeeSchedule] = {}
        self._active_fee_version: Optional[str] = None
        self.register_fee_schedule(fee_schedule or default_fee_schedule(self.settings))

        self.withdrawal_policy = withdrawal_policy or WithdrawalPolicy.from_settings(self.settings)

    # ------------------------------------------------------------------ #
    # Configuration snapshots
    # ------------------------------------------------------------------ #

    def register_fee_schedule(self, schedule: FeeSchedule, activate: bool = True) -> None:
        """Add a fee schedule version. Versions are immutable once registered."""
        existing = self._fee_schedules.get(schedule.version)
        if existing is not None and existing != schedule:
            raise ValidationError(f"Fee schedule version '{schedule.version}' is already registered")
        self._fee_schedules[schedule.version] = schedule
        if activate:
            self._active_fee_version = schedule.version
        logger.info("fee_schedule_registered", version=schedule.version, active=activate)

    @property
    def active_fee_schedule(self) -> FeeSchedule:
        return self._fee_schedules[self._active_fee_version]

    def fee_schedule(self, version: str) -> FeeSchedule:
        schedule = self._fee_schedules.get(version)
        if schedule is None:
            raise NotFoundError("fee schedule", version)
        return schedule

    def set_withdrawal_policy(self, policy: WithdrawalPolicy) -> None:
        self.withdrawal_policy = policy
        logger.info("withdrawal_policy_set", version=policy.version)

    # ------------------------------------------------------------------ #
    # Retry plumbing
    # ------------------------------------------------------------------ #

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.settings.max_commit_attempts),
            wait=wait_exponential(
                multiplier=self.settings.retry_wait_min,
                min=self.settings.retry_wait_min,
                max=self.settings.retry_wait_max,
            ),
            retry=retry_if_exception_type(ConcurrencyConflict),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state) -> None:
        exc = retry_state.outcome.exception()
        logger.info(
            "commit_conflict_retry",
            attempt=retry_state.attempt_number,
            campaign_id=getattr(exc, "campaign_id", None),
        )

    def _with_retry(self, operation: Callable):
        try:
            return self._retrying()(operation)
        except ConcurrencyConflict as exc:
            logger.error(
                "commit_conflict_exhausted",
                campaign_id=exc.campaign_id,
                attempts=self.settings.max_commit_attempts,
            )
            raise

    def _publish(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.notifications.publish(event)

    # ------------------------------------------------------------------ #
    # Campaigns
    # ------------------------------------------------------------------ #

    def create_campaign(
        self,
        founder_id: str,
        company_name: str,
        funding_goal,
        minimum_investment,
        discount_rate=None,
        valuation_cap=None,
        deadline: Optional[datetime] = None,
        title: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> Campaign:
        """Create a draft campaign.

        Raises:
            ValidationError: Non-positive goal or minimum, bad discount, duplicate id
        """
        try:
            campaign = Campaign(
                id=campaign_id or _new_id("cmp"),
                founder_id=founder_id,
                company_name=company_name,
                title=title,
                funding_goal=to_decimal(funding_goal, "funding_goal"),
                minimum_investment=to_decimal(minimum_investment, "minimum_investment"),
                discount_rate=to_decimal(discount_rate, "discount_rate") if discount_rate is not None else None,
                valuation_cap=to_decimal(valuation_cap, "valuation_cap") if valuation_cap is not None else None,
                deadline=deadline,
                created_at=self.clock(),
            )
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

        self.store.add_campaign(campaign)
        logger.info("campaign_created", campaign_id=campaign.id, founder_id=founder_id)
        return campaign

    def get_campaign(self, campaign_id: str) -> Campaign:
        return self.store.load(campaign_id).campaign

    def transition_campaign(self, campaign_id: str, status: Union[CampaignStatus, str]) -> Campaign:
        try:
            target = CampaignStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown campaign status {status!r}") from None

        def operation() -> Campaign:
            snapshot = self.store.load(campaign_id)
            campaign = snapshot.campaign
            validate_transition("campaign", campaign_id, campaign.status, target)
            updated = campaign.model_copy(update={"status": target})
            self.store.commit(campaign_id, snapshot.version, campaign=updated)
            return updated

        updated = self._with_retry(operation)
        logger.info("campaign_status_changed", campaign_id=campaign_id, status=target.value)
        return updated

    # ------------------------------------------------------------------ #
    # Investments
    # ------------------------------------------------------------------ #

    def create_investment(self, campaign_id: str, investor_id: str, amount, region: Optional[str] = None) -> str:
        """Record an investor's commitment.

        Returns:
            New investment id

        Raises:
            ValidationError: Amount below the campaign minimum, campaign not
                accepting investments, malformed region
            NotFoundError: Unknown campaign
        """
        amount = to_decimal(amount)
        region = normalize_region(region)
        investment_id = _new_id("inv")

        def operation() -> Investment:
            snapshot = self.store.load(campaign_id)
            campaign = snapshot.campaign
            now = self.clock()

            if not campaign.accepts_investments(now):
                raise ValidationError(
                    f"Campaign '{campaign_id}' is not accepting investments (status '{campaign.status.value}')"
                )
            if amount < campaign.minimum_investment:
                raise ValidationError(
                    f"Amount {amount} is below the campaign minimum of {campaign.minimum_investment}"
                )
            try:
                investment = Investment(
                    id=investment_id,
                    campaign_id=campaign_id,
                    investor_id=investor_id,
                    amount=amount,
                    region=region,
                    created_at=now,
                    updated_at=now,
                )
            except PydanticValidationError as exc:
                raise ValidationError(_pydantic_message(exc)) from exc

            self.store.commit(campaign_id, snapshot.version, investments=[investment])
            return investment

        try:
            investment = self._with_retry(operation)
        except ValidationError as exc:
            logger.info("investment_rejected", campaign_id=campaign_id, investor_id=investor_id, reason=str(exc))
            raise

        self.stats_cache.invalidate(campaign_id)
        logger.info(
            "investment_committed",
            investment_id=investment.id,
            campaign_id=campaign_id,
            investor_id=investor_id,
            amount=str(amount),
        )
        self._publish([
            InvestmentCommitted(
                occurred_at=investment.created_at,
                investment_id=investment.id,
                campaign_id=campaign_id,
                investor_id=investor_id,
                amount=amount,
            )
        ])
        return investment.id

    def get_investment(self, investment_id: str) -> Investment:
        campaign_id = self.store.campaign_for_investment(investment_id)
        return self.store.load(campaign_id).investment(investment_id)

    def list_investments(self, campaign_id: str) -> List[Investment]:
        return sorted(self.store.load(campaign_id).investments, key=lambda i: i.created_at)

    def _mutate_investment(self, investment_id: str, mutation: InvestmentMutation) -> Investment:
        campaign_id = self.store.campaign_for_investment(investment_id)

        def operation() -> Tuple[Investment, List[DomainEvent]]:
            snapshot = self.store.load(campaign_id)
            current = snapshot.investment(investment_id)
            result = mutation(snapshot, current)
            if result is None:
                return current, []
            updated, events = result
            self.store.commit(campaign_id, snapshot.version, investments=[updated])
            return updated, events

        investment, events = self._with_retry(operation)
        if events:
            self.stats_cache.invalidate(campaign_id)
            self._publish(events)
        return investment

    def _status_change(self, investment: Investment, target: InvestmentStatus, **updates) -> Tuple[Investment, List[DomainEvent]]:
        validate_transition("investment", investment.id, investment.status, target)
        now = self.clock()
        updated = investment.model_copy(update={"status": target, "updated_at": now, **updates})
        event = InvestmentStatusChanged(
            occurred_at=now,
            investment_id=investment.id,
            campaign_id=investment.campaign_id,
            from_status=investment.status,
            to_status=target,
        )
        return updated, [event]

    def apply_payment_event(
        self,
        investment_id: str,
        payment_status: Union[PaymentStatus, str],
        gateway_event_id: Optional[str] = None,
    ) -> Investment:
        """Apply a payment-gateway state change to an investment.

        Applying the same state twice is a no-op, and a redelivered
        ``gateway_event_id`` is ignored, so completed totals are never
        double counted.

        Raises:
            NotFoundError: Unknown investment (logged, never retried)
            InvalidStateTransition: The move is not allowed from the current status
            ValidationError: Unknown payment status
        """
        try:
            status = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError(f"Unknown payment status {payment_status!r}") from None

        target = payment_target(status)
        if target is None:
            raise ValidationError(f"Payment status '{status.value}' does not drive an investment transition")

        try:
            self.store.campaign_for_investment(investment_id)
        except NotFoundError:
            logger.error(
                "payment_event_unknown_investment",
                investment_id=investment_id,
                payment_status=status.value,
                gateway_event_id=gateway_event_id,
            )
            raise

        if gateway_event_id is not None and not self.store.claim_gateway_event(gateway_event_id):
            logger.info("payment_event_duplicate", investment_id=investment_id, gateway_event_id=gateway_event_id)
            return self.get_investment(investment_id)

        def mutation(snapshot: LedgerSnapshot, investment: Investment):
            if investment.status == target or investment.payment_status == status:
                logger.info("payment_event_noop", investment_id=investment_id, status=target.value)
                return None
            return self._status_change(investment, target, payment_status=status)

        try:
            investment = self._mutate_investment(investment_id, mutation)
        except Exception:
            # A rejected delivery may be retried by the gateway
            if gateway_event_id is not None:
                self.store.release_gateway_event(gateway_event_id)
            raise

        logger.info(
            "payment_event_applied",
            investment_id=investment_id,
            payment_status=status.value,
            status=investment.status.value,
        )
        return investment

    def sign_agreement(self, investment_id: str) -> Investment:
        """Record the investor's signature on the SAFE for this investment."""

        def mutation(snapshot: LedgerSnapshot, investment: Investment):
            if investment.status in (InvestmentStatus.FAILED, InvestmentStatus.CANCELLED):
                raise ValidationError(
                    f"Investment '{investment_id}' is {investment.status.value}; it can no longer be signed"
                )
            if investment.agreement_signed:
                return None
            now = self.clock()
            updated = investment.model_copy(update={"agreement_signed": True, "signed_at": now, "updated_at": now})
            return updated, []

        investment = self._mutate_investment(investment_id, mutation)
        logger.info("investment_agreement_signed", investment_id=investment_id)
        return investment

    def cancel_investment(self, investment_id: str, by_admin: bool = False) -> Investment:
        """Cancel a commitment.

        Investors may cancel before payment starts processing; administrators
        may cancel any commitment that has not been paid.
        """

        def mutation(snapshot: LedgerSnapshot, investment: Investment):
            if not by_admin and investment.status not in INVESTOR_CANCELLABLE:
                logger.warning(
                    "invalid_state_transition",
                    entity="investment",
                    entity_id=investment_id,
                    from_status=investment.status.value,
                    to_status=InvestmentStatus.CANCELLED.value,
                    actor="investor",
                )
                raise InvalidStateTransition(
                    "investment", investment_id, investment.status.value, InvestmentStatus.CANCELLED.value
                )
            return self._status_change(investment, InvestmentStatus.CANCELLED)

        investment = self._mutate_investment(investment_id, mutation)
        logger.info("investment_cancelled", investment_id=investment_id, by_admin=by_admin)
        return investment

    def complete_investment(self, investment_id: str) -> Investment:
        """Settle a paid investment: resolve the platform fee and finalize the net amount.

        The fee schedule version used is stored on the record so the fee can be
        reproduced later with ``recompute_fee``.
        """
        schedule = self.active_fee_schedule

        def mutation(snapshot: LedgerSnapshot, investment: Investment):
            validate_transition("investment", investment.id, investment.status, InvestmentStatus.COMPLETED)
            quote = resolve_fee(investment.amount, investment.region, schedule)
            now = self.clock()
            updated, events = self._status_change(
                investment,
                InvestmentStatus.COMPLETED,
                completed_at=now,
                fee_tier=quote.tier_name,
                fee_percentage=quote.fee_percentage,
                fee_amount=quote.fee_amount,
                net_amount=investment.amount - quote.fee_amount,
                fee_schedule_version=quote.schedule_version,
            )
            events.append(
                InvestmentCompleted(
                    occurred_at=now,
                    investment_id=investment.id,
                    campaign_id=investment.campaign_id,
                    investor_id=investment.investor_id,
                    amount=investment.amount,
                    fee_amount=quote.fee_amount,
                    net_amount=updated.net_amount,
                )
            )
            return updated, events

        investment = self._mutate_investment(investment_id, mutation)
        logger.info(
            "investment_completed",
            investment_id=investment_id,
            fee_tier=investment.fee_tier,
            fee_amount=str(investment.fee_amount),
            net_amount=str(investment.net_amount),
            fee_schedule_version=investment.fee_schedule_version,
        )
        return investment

    def recompute_fee(self, investment_id: str) -> FeeQuote:
        """Recompute a settled fee with the schedule version recorded at settlement."""
        investment = self.get_investment(investment_id)
        if investment.fee_schedule_version is None:
            raise ValidationError(f"Investment '{investment_id}' has not been settled")
        return resolve_fee(investment.amount, investment.region, self.fee_schedule(investment.fee_schedule_version))

    # ------------------------------------------------------------------ #
    # Stats
    # ------------------------------------------------------------------ #

    def _stats_for(self, snapshot: LedgerSnapshot) -> CampaignStats:
        cached = self.stats_cache.get(snapshot.campaign.id, snapshot.version)
        if cached is not None:
            return cached
        stats = compute_campaign_stats(
            snapshot.campaign,
            snapshot.investments,
            ceiling=self.settings.progress_ceiling,
            ledger_version=snapshot.version,
        )
        self.stats_cache.put(stats)
        return stats

    def get_campaign_stats(self, campaign_id: str) -> CampaignStats:
        """total_raised, investor_count and progress_percent derived from the ledger."""
        return self._stats_for(self.store.load(campaign_id))

    def reconcile_stats(self) -> List[str]:
        """Rebuild all cached stats from the ledger; returns drifted campaign ids."""
        ledgers = []
        for campaign_id in self.store.campaign_ids():
            snapshot = self.store.load(campaign_id)
            ledgers.append((snapshot.campaign, list(snapshot.investments), snapshot.version))
        drifted = reconcile(self.stats_cache, ledgers, ceiling=self.settings.progress_ceiling)
        logger.info("stats_reconciled", campaigns=len(ledgers), drifted=len(drifted))
        return drifted

    # ------------------------------------------------------------------ #
    # Fees
    # ------------------------------------------------------------------ #

    def resolve_fee(self, amount, region: Optional[str] = None, schedule_version: Optional[str] = None) -> FeeQuote:
        schedule = self.fee_schedule(schedule_version) if schedule_version else self.active_fee_schedule
        return resolve_fee(to_decimal(amount), region, schedule)

    # ------------------------------------------------------------------ #
    # SAFE agreements and conversion
    # ------------------------------------------------------------------ #

    def issue_safe_agreement(self, investment_id: str, investor_name: str) -> SafeAgreementSnapshot:
        """Issue the immutable SAFE snapshot for a completed investment."""
        campaign_id = self.store.campaign_for_investment(investment_id)
        snapshot = self.store.load(campaign_id)
        investment = snapshot.investment(investment_id)
        if investment.status != InvestmentStatus.COMPLETED:
            raise ValidationError(
                f"Investment '{investment_id}' is {investment.status.value}; SAFEs are issued for completed investments"
            )
        campaign = snapshot.campaign
        try:
            agreement = SafeAgreementSnapshot(
                agreement_id=_new_id("safe"),
                investment_id=investment_id,
                investment_amount=investment.amount,
                valuation_cap=campaign.valuation_cap,
                discount_rate=campaign.discount_rate,
                company_name=campaign.company_name,
                investor_name=investor_name,
                agreement_date=self.clock(),
            )
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

        self.store.add_agreement(agreement)
        logger.info("safe_agreement_issued", agreement_id=agreement.agreement_id, investment_id=investment_id)
        self._publish([
            SafeAgreementIssued(
                occurred_at=agreement.agreement_date,
                agreement_id=agreement.agreement_id,
                investment_id=investment_id,
            )
        ])
        return agreement

    def supersede_safe_agreement(self, agreement_id: str, **corrections) -> SafeAgreementSnapshot:
        """Issue a corrected snapshot that replaces ``agreement_id``."""
        unknown = set(corrections) - _AGREEMENT_CORRECTABLE
        if unknown:
            raise ValidationError(f"Fields cannot be corrected on an agreement: {sorted(unknown)}")

        original = self.store.get_agreement(agreement_id)
        data = original.model_dump()
        data.update(corrections)
        data.update(
            agreement_id=_new_id("safe"),
            supersedes=agreement_id,
        )
        if "agreement_date" not in corrections:
            data["agreement_date"] = self.clock()
        try:
            replacement = SafeAgreementSnapshot(**data)
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

        self.store.supersede_agreement(agreement_id, replacement)
        logger.info(
            "safe_agreement_superseded",
            agreement_id=replacement.agreement_id,
            supersedes=agreement_id,
            investment_id=replacement.investment_id,
        )
        self._publish([
            SafeAgreementIssued(
                occurred_at=replacement.agreement_date,
                agreement_id=replacement.agreement_id,
                investment_id=replacement.investment_id,
                supersedes=agreement_id,
            )
        ])
        return replacement

    def active_safe_agreement(self, investment_id: str) -> Optional[SafeAgreementSnapshot]:
        return self.store.active_agreement(investment_id)

    def safe_terms_for(self, investment_id: str) -> SafeTerms:
        """Terms of the active SAFE snapshot, or the campaign terms if none was issued."""
        agreement = self.store.active_agreement(investment_id)
        if agreement is not None:
            return agreement.terms()

        campaign_id = self.store.campaign_for_investment(investment_id)
        snapshot = self.store.load(campaign_id)
        investment = snapshot.investment(investment_id)
        return SafeTerms(
            investment_amount=investment.amount,
            valuation_cap=snapshot.campaign.valuation_cap,
            discount_rate=snapshot.campaign.discount_rate,
        )

    def _convertible_terms(self, investment_id: str) -> SafeTerms:
        investment = self.get_investment(investment_id)
        if investment.status != InvestmentStatus.COMPLETED:
            raise ValidationError(
                f"Investment '{investment_id}' is {investment.status.value}; only completed investments convert"
            )
        return self.safe_terms_for(investment_id)

    def compute_conversion(self, investment_id: str, financing_event: Union[FinancingEvent, dict]) -> ConversionResult:
        """Conversion price, shares issued and winning bound at a priced round.

        Raises:
            ConfigurationError: Neither cap nor discount, or zero fully diluted shares
        """
        try:
            event = FinancingEvent.model_validate(financing_event)
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc

        result = convert_safe(self._convertible_terms(investment_id), event)
        logger.info(
            "safe_conversion_computed",
            investment_id=investment_id,
            conversion_price=str(result.conversion_price),
            shares_issued=str(result.shares_issued),
            basis=result.basis.value,
        )
        return result

    def compute_liquidity_payout(self, investment_id: str, liquidity_event: Union[LiquidityEvent, dict]) -> LiquidityPayout:
        try:
            event = LiquidityEvent.model_validate(liquidity_event)
        except PydanticValidationError as exc:
            raise ValidationError(_pydantic_message(exc)) from exc
        return liquidity_payout(self._convertible_terms(investment_id), event)

    # ------------------------------------------------------------------ #
    # Withdrawals
    # ------------------------------------------------------------------ #

    def available_balance(self, campaign_id: str) -> CampaignBalance:
        snapshot = self.store.load(campaign_id)
        stats = self._stats_for(snapshot)
        return compute_balance(stats, snapshot.investments, self.store.withdrawals(campaign_id))

    def request_withdrawal(self, founder_id: str, campaign_id: str, amount) -> str:
        """Check eligibility and reserve the amount as a pending withdrawal.

        The check and the reservation run under the founder's lock, so two
        concurrent requests cannot both pass the balance check against the
        same funds.

        Raises:
            KycNotVerified, GoalNotReached, BelowMinimumWithdrawal,
            InsufficientBalance: The failed precondition
            ValidationError: Campaign not owned by the founder, bad amount
        """
        amount = to_decimal(amount)
        policy = self.withdrawal_policy

        with self.store.founder_lock(founder_id):
            snapshot = self.store.load(campaign_id)
            if snapshot.campaign.founder_id != founder_id:
                raise ValidationError(f"Campaign '{campaign_id}' is not owned by founder '{founder_id}'")

            stats = self._stats_for(snapshot)
            balance = compute_balance(stats, snapshot.investments, self.store.withdrawals(campaign_id))
            kyc_status = self.kyc.get_status(founder_id)

            try:
                check_withdrawal(founder_id, amount, kyc_status, stats, balance, policy)
            except EligibilityError as exc:
                logger.info(
                    "withdrawal_refused",
                    founder_id=founder_id,
                    campaign_id=campaign_id,
                    amount=str(amount),
                    reason=exc.code,
                    policy_version=policy.version,
                )
                raise

            now = self.clock()
            withdrawal = WithdrawalRequest(
                id=_new_id("wd"),
                founder_id=founder_id,
                campaign_id=campaign_id,
                amount=amount,
                requested_at=now,
                policy_version=policy.version,
            )
            self.store.save_withdrawal(withdrawal)

        logger.info(
            "withdrawal_requested",
            withdrawal_id=withdrawal.id,
            founder_id=founder_id,
            campaign_id=campaign_id,
            amount=str(amount),
            available_before=str(balance.available_balance),
        )
        self._publish([
            WithdrawalRequested(
                occurred_at=now,
                withdrawal_id=withdrawal.id,
                founder_id=founder_id,
                campaign_id=campaign_id,
                amount=amount,
            )
        ])
        return withdrawal.id

    def get_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        return self.store.get_withdrawal(withdrawal_id)

    def list_withdrawals(self, campaign_id: Optional[str] = None) -> List[WithdrawalRequest]:
        return sorted(self.store.withdrawals(campaign_id), key=lambda w: w.requested_at)

    def _transition_withdrawal(
        self,
        withdrawal_id: str,
        target: WithdrawalStatus,
        admin_notes: Optional[str] = None,
    ) -> WithdrawalRequest:
        founder_id = self.store.get_withdrawal(withdrawal_id).founder_id
        with self.store.founder_lock(founder_id):
            withdrawal = self.store.get_withdrawal(withdrawal_id)
            validate_transition("withdrawal", withdrawal_id, withdrawal.status, target)
            update = {"status": target, "processed_at": self.clock()}
            if admin_notes is not None:
                update["admin_notes"] = admin_notes
            updated = withdrawal.model_copy(update=update)
            self.store.save_withdrawal(updated)

        logger.info(
            "withdrawal_status_changed",
            withdrawal_id=withdrawal_id,
            from_status=withdrawal.status.value,
            to_status=target.value,
        )
        return updated

    def approve_withdrawal(self, withdrawal_id: str, admin_notes: Optional[str] = None) -> WithdrawalRequest:
        withdrawal = self._transition_withdrawal(withdrawal_id, WithdrawalStatus.APPROVED, admin_notes)
        self._publish([
            WithdrawalApproved(
                occurred_at=withdrawal.processed_at,
                withdrawal_id=withdrawal.id,
                founder_id=withdrawal.founder_id,
                campaign_id=withdrawal.campaign_id,
                amount=withdrawal.amount,
            )
        ])
        return withdrawal

    def reject_withdrawal(self, withdrawal_id: str, reason: Optional[str] = None) -> WithdrawalRequest:
        """Reject a pending withdrawal and release its reservation."""
        withdrawal = self._transition_withdrawal(withdrawal_id, WithdrawalStatus.REJECTED, reason)
        self._publish([
            WithdrawalRejected(
                occurred_at=withdrawal.processed_at,
                withdrawal_id=withdrawal.id,
                founder_id=withdrawal.founder_id,
                campaign_id=withdrawal.campaign_id,
                amount=withdrawal.amount,
                reason=reason,
            )
        ])
        return withdrawal

    def complete_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        withdrawal = self._transition_withdrawal(withdrawal_id, WithdrawalStatus.COMPLETED)
        self._publish([
            WithdrawalCompleted(
                occurred_at=withdrawal.processed_at,
                withdrawal_id=withdrawal.id,
                founder_id=withdrawal.founder_id,
                campaign_id=withdrawal.campaign_id,
                amount=withdrawal.amount,
            )
        ])
        return withdrawal

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    def report(self, campaign_ids: Optional[List[str]] = None) -> LedgerReport:
        """Copy of campaigns, investments, withdrawals and stats for the reporting blocks."""
        ids = campaign_ids if campaign_ids is not None else self.store.campaign_ids()
        report = LedgerReport(generated_at=self.clock(), progress_ceiling=self.settings.progress_ceiling)
        for campaign_id in ids:
            snapshot = self.store.load(campaign_id)
            report.campaigns.append(snapshot.campaign)
            report.investments.extend(sorted(snapshot.investments, key=lambda i: i.created_at))
            report.withdrawals.extend(self.list_withdrawals(campaign_id))
            report.stats[campaign_id] = self._stats_for(snapshot)
        return report
