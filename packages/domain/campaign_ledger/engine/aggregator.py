"""Campaign funding aggregation.

Stats are derived on read from the investment ledger; nothing is stored as a
source of truth. ``StatsCache`` may hold derived values keyed by campaign id
and ledger version, and every investment status transition invalidates the
campaign's entry. ``reconcile`` proves the cache reconstructible by
recomputing from the ledger.
"""

import threading
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from ..errors import ValidationError
from ..schemas import Campaign, CampaignStats, Investment, InvestmentStatus

logger = structlog.get_logger()


def clamp_progress(total_raised: Decimal, funding_goal: Decimal, ceiling: Decimal) -> Decimal:
    """total_raised / funding_goal * 100, clamped to [0, ceiling]."""
    if funding_goal <= 0:
        raise ValidationError(f"funding_goal must be positive, got {funding_goal}")
    progress = total_raised / funding_goal * Decimal("100")
    if progress < 0:
        return Decimal("0")
    return min(progress, ceiling)


def compute_campaign_stats(
    campaign: Campaign,
    investments: Iterable[Investment],
    ceiling: Decimal = Decimal("100"),
    ledger_version: int = 0,
) -> CampaignStats:
    """Derive funding stats from a campaign's investments.

    Only ``completed`` investments count. Investors are counted once no
    matter how many completed commitments they hold.

    Args:
        campaign: Campaign the investments belong to
        investments: Every investment record of the campaign (any status)
        ceiling: Upper clamp for progress_percent (100, or an overfunding cap)
        ledger_version: Version of the ledger the records were read at

    Returns:
        CampaignStats

    Raises:
        ValidationError: funding_goal is not positive

    Example:
        Goal $100,000; completed $30,000 (alice) and $20,000 (bob)
        -> total_raised=50000, investor_count=2, progress_percent=50
    """
    total_raised = Decimal("0")
    investors = set()

    for investment in investments:
        if investment.campaign_id != campaign.id:
            continue
        if investment.status != InvestmentStatus.COMPLETED:
            continue
        total_raised += investment.amount
        investors.add(investment.investor_id)

    progress = clamp_progress(total_raised, campaign.funding_goal, ceiling)

    return CampaignStats(
        campaign_id=campaign.id,
        total_raised=total_raised,
        investor_count=len(investors),
        progress_percent=progress,
        ledger_version=ledger_version,
    )


class StatsCache:
    """Version-keyed cache of derived campaign stats.

    An entry is served only when its ledger version equals the version the
    caller just read, so a stale number can never be returned even if an
    invalidation was missed.
    """

    def __init__(self):
        self._entries: Dict[str, CampaignStats] = {}
        self._lock = threading.Lock()

    def get(self, campaign_id: str, ledger_version: int) -> Optional[CampaignStats]:
        with self._lock:
            stats = self._entries.get(campaign_id)
        if stats is None or stats.ledger_version != ledger_version:
            return None
        return stats

    def put(self, stats: CampaignStats) -> None:
        with self._lock:
            current = self._entries.get(stats.campaign_id)
            # Never replace newer stats with older ones from a slow reader
            if current is not None and current.ledger_version > stats.ledger_version:
                return
            self._entries[stats.campaign_id] = stats

    def invalidate(self, campaign_id: str) -> None:
        with self._lock:
            self._entries.pop(campaign_id, None)

    def peek(self, campaign_id: str) -> Optional[CampaignStats]:
        with self._lock:
            return self._entries.get(campaign_id)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def reconcile(
    cache: StatsCache,
    ledgers: Iterable[Tuple[Campaign, List[Investment], int]],
    ceiling: Decimal = Decimal("100"),
) -> List[str]:
    """Rebuild stats from the ledger and repair drifted cache entries.

    Args:
        cache: Cache to check
        ledgers: (campaign, investments, ledger_version) per campaign
        ceiling: Progress ceiling

    Returns:
        Ids of campaigns whose cached stats disagreed with the ledger
    """
    drifted = []
    for campaign, investments, version in ledgers:
        fresh = compute_campaign_stats(campaign, investments, ceiling, version)
        cached = cache.peek(campaign.id)
        if cached is not None and (
            cached.total_raised != fresh.total_raised
            or cached.investor_count != fresh.investor_count
            or cached.progress_percent != fresh.progress_percent
        ):
            logger.warning(
                "stats_cache_drift",
                campaign_id=campaign.id,
                cached_total=str(cached.total_raised),
                ledger_total=str(fresh.total_raised),
            )
            drifted.append(campaign.id)
        cache.invalidate(campaign.id)
        cache.put(fresh)
    return drifted
