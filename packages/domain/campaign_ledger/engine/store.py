"""In-memory ledger storage with per-campaign optimistic versioning.

Each campaign is an aggregate: the campaign record plus all of its
investments, guarded by a version counter. Writers read a LedgerSnapshot,
compute the new records, and commit with the version they read; if another
writer committed first the commit raises ConcurrencyConflict and the caller
retries from a fresh snapshot.

Withdrawals are not part of the campaign aggregate. They are serialized by
a per-founder lock that the service holds across the eligibility check and
the insert of the pending request.
"""

import threading
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ConcurrencyConflict, NotFoundError, ValidationError
from ..schemas import Campaign, Investment, SafeAgreementSnapshot, WithdrawalRequest


@dataclass(frozen=True)
class LedgerSnapshot:
    """Consistent read of one campaign aggregate at a version."""

    campaign: Campaign
    investments: Tuple[Investment, ...]
    version: int

    def investment(self, investment_id: str) -> Investment:
        for investment in self.investments:
            if investment.id == investment_id:
                return investment
        raise NotFoundError("investment", investment_id)


class InMemoryLedgerStore:
    """Thread-safe store. All returned records are copies."""

    def __init__(self, gateway_event_retention: int = 100_000):
        if gateway_event_retention < 1:
            raise ValidationError("gateway_event_retention must be at least 1")
        self._lock = threading.Lock()
        self.gateway_event_retention = gateway_event_retention

        self._campaigns: Dict[str, Campaign] = {}
        self._investments: Dict[str, Dict[str, Investment]] = {}
        self._versions: Dict[str, int] = {}
        self._investment_index: Dict[str, str] = {}  # investment_id -> campaign_id

        self._withdrawals: Dict[str, WithdrawalRequest] = {}
        self._founder_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

        self._agreements: Dict[str, SafeAgreementSnapshot] = {}
        self._active_agreement: Dict[str, str] = {}  # investment_id -> agreement_id
        self._superseded_by: Dict[str, str] = {}

        # Oldest first; trimmed to gateway_event_retention ids
        self._gateway_events: "OrderedDict[str, None]" = OrderedDict()

    # ------------------------------------------------------------------ #
    # Campaign aggregates
    # ------------------------------------------------------------------ #

    def add_campaign(self, campaign: Campaign) -> None:
        with self._lock:
            if campaign.id in self._campaigns:
                raise ValidationError(f"Campaign '{campaign.id}' already exists")
            self._campaigns[campaign.id] = campaign.model_copy(deep=True)
            self._investments[campaign.id] = {}
            self._versions[campaign.id] = 0

    def campaign_ids(self) -> List[str]:
        with self._lock:
            return list(self._campaigns)

    def load(self, campaign_id: str) -> LedgerSnapshot:
        with self._lock:
            if campaign_id not in self._campaigns:
                raise NotFoundError("campaign", campaign_id)
            return LedgerSnapshot(
                campaign=self._campaigns[campaign_id].model_copy(deep=True),
                investments=tuple(
                    i.model_copy(deep=True) for i in self._investments[campaign_id].values()
                ),
                version=self._versions[campaign_id],
            )

    def campaign_for_investment(self, investment_id: str) -> str:
        with self._lock:
            campaign_id = self._investment_index.get(investment_id)
        if campaign_id is None:
            raise NotFoundError("investment", investment_id)
        return campaign_id

    def commit(
        self,
        campaign_id: str,
        expected_version: int,
        investments: Iterable[Investment] = (),
        campaign: Optional[Campaign] = None,
    ) -> int:
        """Write records if the aggregate is still at ``expected_version``.

        Returns:
            The new version

        Raises:
            ConcurrencyConflict: Another writer committed since the read
        """
        investments = list(investments)
        with self._lock:
            if campaign_id not in self._campaigns:
                raise NotFoundError("campaign", campaign_id)
            actual = self._versions[campaign_id]
            if actual != expected_version:
                raise ConcurrencyConflict(campaign_id, expected_version, actual)

            for investment in investments:
                if investment.campaign_id != campaign_id:
                    raise ValidationError(
                        f"Investment '{investment.id}' belongs to '{investment.campaign_id}', not '{campaign_id}'"
                    )
                self._investments[campaign_id][investment.id] = investment.model_copy(deep=True)
                self._investment_index[investment.id] = campaign_id
            if campaign is not None:
                self._campaigns[campaign_id] = campaign.model_copy(deep=True)

            self._versions[campaign_id] = actual + 1
            return actual + 1

    # ------------------------------------------------------------------ #
    # Payment gateway deliveries
    # ------------------------------------------------------------------ #

    def gateway_event_seen(self, gateway_event_id: str) -> bool:
        with self._lock:
            return gateway_event_id in self._gateway_events

    def claim_gateway_event(self, gateway_event_id: str) -> bool:
        """Record a delivery id. Returns False if it was already recorded.

        Only the most recent ``gateway_event_retention`` ids are remembered;
        a redelivery older than that window is applied again, which is a
        no-op when the investment already holds that payment status.
        """
        with self._lock:
            if gateway_event_id in self._gateway_events:
                return False
            self._gateway_events[gateway_event_id] = None
            while len(self._gateway_events) > self.gateway_event_retention:
                self._gateway_events.popitem(last=False)
            return True

    def release_gateway_event(self, gateway_event_id: str) -> None:
        """Forget a claimed id whose delivery was not applied."""
        with self._lock:
            self._gateway_events.pop(gateway_event_id, None)

    # ------------------------------------------------------------------ #
    # Withdrawals
    # ------------------------------------------------------------------ #

    def founder_lock(self, founder_id: str) -> threading.Lock:
        with self._lock:
            return self._founder_locks[founder_id]

    def save_withdrawal(self, withdrawal: WithdrawalRequest) -> None:
        with self._lock:
            self._withdrawals[withdrawal.id] = withdrawal.model_copy(deep=True)

    def get_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        with self._lock:
            withdrawal = self._withdrawals.get(withdrawal_id)
            if withdrawal is None:
                raise NotFoundError("withdrawal", withdrawal_id)
            return withdrawal.model_copy(deep=True)

    def withdrawals(self, campaign_id: Optional[str] = None) -> List[WithdrawalRequest]:
        with self._lock:
            return [
                w.model_copy(deep=True) for w in self._withdrawals.values()
                if campaign_id is None or w.campaign_id == campaign_id
            ]

    # ------------------------------------------------------------------ #
    # SAFE agreements
    # ------------------------------------------------------------------ #

    def add_agreement(self, agreement: SafeAgreementSnapshot) -> None:
        """Store the first agreement for an investment."""
        with self._lock:
            if agreement.investment_id in self._active_agreement:
                raise ValidationError(
                    f"Investment '{agreement.investment_id}' already has agreement "
                    f"'{self._active_agreement[agreement.investment_id]}'; supersede it instead"
                )
            self._agreements[agreement.agreement_id] = agreement
            self._active_agreement[agreement.investment_id] = agreement.agreement_id

    def supersede_agreement(self, old_id: str, replacement: SafeAgreementSnapshot) -> None:
        with self._lock:
            if old_id not in self._agreements:
                raise NotFoundError("agreement", old_id)
            if old_id in self._superseded_by:
                raise ValidationError(
                    f"Agreement '{old_id}' was already superseded by '{self._superseded_by[old_id]}'"
                )
            self._agreements[replacement.agreement_id] = replacement
            self._superseded_by[old_id] = replacement.agreement_id
            self._active_agreement[replacement.investment_id] = replacement.agreement_id

    def get_agreement(self, agreement_id: str) -> SafeAgreementSnapshot:
        with self._lock:
            agreement = self._agreements.get(agreement_id)
        if agreement is None:
            raise NotFoundError("agreement", agreement_id)
        return agreement

    def active_agreement(self, investment_id: str) -> Optional[SafeAgreementSnapshot]:
        with self._lock:
            agreement_id = self._active_agreement.get(investment_id)
            return self._agreements.get(agreement_id) if agreement_id else None

    def superseded_by(self, agreement_id: str) -> Optional[str]:
        with self._lock:
            return self._superseded_by.get(agreement_id)

    def agreement_history(self, investment_id: str) -> List[SafeAgreementSnapshot]:
        """All snapshots of an investment following the supersession chain, oldest first."""
        with self._lock:
            root = next(
                (a for a in self._agreements.values()
                 if a.investment_id == investment_id and a.supersedes is None),
                None,
            )
            history = []
            current = root
            while current is not None:
                history.append(current)
                next_id = self._superseded_by.get(current.agreement_id)
                current = self._agreements.get(next_id) if next_id else None
        return history
