"""Tests for CampaignStatementRenderer.

1. Sheet layout - expected sheets, headers and totals formulas
2. Block verification - workbook values match ledger stats
3. Config switches - campaign filter, optional sheets, inactive rows
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from campaign_ledger.config import LedgerSettings
from campaign_ledger.engine import LedgerService, StaticKycDirectory
from campaign_ledger.errors import NotFoundError
from campaign_ledger.schemas import CampaignStatus, KycStatus, PaymentStatus, StatementWorkbookCFG
from ledger_excel import CampaignStatementRenderer


# =============================================================================
# Test Data Builders
# =============================================================================

def build_service() -> LedgerService:
    """Two campaigns with settled, in-flight and failed investments.

    - Acme: $30,000 + $20,000 completed, $5,000 pending, $700 failed,
      one $1,000 withdrawal
    - Beta: $2,000 completed
    """
    ticks = iter(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc) + timedelta(minutes=n) for n in range(10_000))
    service = LedgerService(
        settings=LedgerSettings(_env_file=None, retry_wait_min=0, retry_wait_max=0),
        kyc=StaticKycDirectory({"founder_alice": KycStatus.VERIFIED}),
        clock=lambda: next(ticks),
    )

    def settle(campaign_id, investor_id, amount):
        investment_id = service.create_investment(campaign_id, investor_id, Decimal(amount))
        for status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.SUCCEEDED):
            service.apply_payment_event(investment_id, status)
        return service.complete_investment(investment_id)

    for campaign_id, founder, company in (
        ("cmp_acme", "founder_alice", "Acme Robotics Inc."),
        ("cmp_beta", "founder_bea", "Beta Labs"),
    ):
        service.create_campaign(
            founder_id=founder,
            company_name=company,
            funding_goal=Decimal("100000"),
            minimum_investment=Decimal("100"),
            valuation_cap=Decimal("5000000"),
            discount_rate=Decimal("20"),
            campaign_id=campaign_id,
        )
        service.transition_campaign(campaign_id, CampaignStatus.ACTIVE)

    settle("cmp_acme", "investor_alice", "30000")
    settle("cmp_acme", "investor_bob", "20000")
    pending = service.create_investment("cmp_acme", "investor_carol", Decimal("5000"))
    service.apply_payment_event(pending, PaymentStatus.PENDING)
    failed = service.create_investment("cmp_acme", "investor_dan", Decimal("700"))
    service.apply_payment_event(failed, PaymentStatus.FAILED)
    service.request_withdrawal("founder_alice", "cmp_acme", Decimal("1000"))

    settle("cmp_beta", "investor_erin", "2000")
    return service


def header_map(sheet, row):
    return {cell.value: cell.column for cell in sheet[row] if cell.value is not None}


@pytest.fixture
def service():
    return build_service()


# =============================================================================
# Layout
# =============================================================================

def test_writes_all_sheets(service, tmp_path):
    path = tmp_path / "statement.xlsx"
    renderer = CampaignStatementRenderer(StatementWorkbookCFG(title="Platform statement"), service.report())

    assert renderer.render(str(path)) == str(path)

    wb = load_workbook(path)
    assert wb.sheetnames == ["Summary", "Investments", "Withdrawals"]
    assert wb["Summary"]["A1"].value == "Platform statement"


def test_summary_totals_are_formulas(service, tmp_path):
    path = tmp_path / "statement.xlsx"
    CampaignStatementRenderer(StatementWorkbookCFG(), service.report()).render(str(path))

    sheet = load_workbook(path)["Summary"]
    headers = header_map(sheet, 4)
    raised_col = headers["Raised"]

    assert sheet.cell(row=7, column=1).value == "Totals"
    assert sheet.cell(row=7, column=raised_col).value.startswith("=SUM(")


# =============================================================================
# Block verification
# =============================================================================

def test_summary_matches_ledger_stats(service):
    wb = CampaignStatementRenderer(StatementWorkbookCFG(), service.report()).build_workbook()
    sheet = wb["Summary"]
    headers = header_map(sheet, 4)

    rows = {sheet.cell(row=r, column=1).value: r for r in range(5, 7)}
    acme = rows["cmp_acme"]
    stats = service.get_campaign_stats("cmp_acme")
    balance = service.available_balance("cmp_acme")

    assert sheet.cell(row=acme, column=headers["Raised"]).value == pytest.approx(float(stats.total_raised))
    assert sheet.cell(row=acme, column=headers["Investors"]).value == stats.investor_count
    assert sheet.cell(row=acme, column=headers["Progress"]).value == pytest.approx(0.5)
    assert sheet.cell(row=acme, column=headers["In flight"]).value == pytest.approx(5000)
    assert sheet.cell(row=acme, column=headers["Fees"]).value == pytest.approx(2500)
    assert sheet.cell(row=acme, column=headers["Available"]).value == pytest.approx(float(balance.available_balance))

    beta = rows["cmp_beta"]
    assert sheet.cell(row=beta, column=headers["Raised"]).value == pytest.approx(2000)


def test_investment_rows_carry_fees(service):
    wb = CampaignStatementRenderer(StatementWorkbookCFG(), service.report()).build_workbook()
    sheet = wb["Investments"]
    headers = header_map(sheet, 1)

    by_investor = {
        sheet.cell(row=r, column=headers["Investor"]).value: r
        for r in range(2, sheet.max_row + 1)
    }
    bob = by_investor["investor_bob"]
    assert sheet.cell(row=bob, column=headers["Fee"]).value == pytest.approx(1000)
    assert sheet.cell(row=bob, column=headers["Fee %"]).value == pytest.approx(0.05)
    assert sheet.cell(row=bob, column=headers["Net"]).value == pytest.approx(19000)
    assert isinstance(sheet.cell(row=bob, column=headers["Completed"]).value, datetime)


# =============================================================================
# Config switches
# =============================================================================

def test_inactive_investments_hidden_by_default(service):
    wb = CampaignStatementRenderer(StatementWorkbookCFG(), service.report()).build_workbook()
    statuses = [row[4] for row in wb["Investments"].iter_rows(min_row=2, values_only=True)]
    assert "failed" not in statuses
    assert len(statuses) == 4

    cfg = StatementWorkbookCFG(include_inactive_investments=True)
    wb = CampaignStatementRenderer(cfg, service.report()).build_workbook()
    statuses = [row[4] for row in wb["Investments"].iter_rows(min_row=2, values_only=True)]
    assert "failed" in statuses


def test_campaign_filter(service):
    cfg = StatementWorkbookCFG(campaign_ids=["cmp_beta"], include_withdrawals=False)
    wb = CampaignStatementRenderer(cfg, service.report()).build_workbook()

    assert wb.sheetnames == ["Summary", "Investments"]
    investors = [row[2] for row in wb["Investments"].iter_rows(min_row=2, values_only=True)]
    assert investors == ["investor_erin"]


def test_unknown_campaign_in_filter(service):
    cfg = StatementWorkbookCFG(campaign_ids=["cmp_missing"])
    with pytest.raises(NotFoundError):
        CampaignStatementRenderer(cfg, service.report()).build_workbook()


def test_empty_ledger(tmp_path):
    service = LedgerService(settings=LedgerSettings(_env_file=None))
    path = tmp_path / "empty.xlsx"
    CampaignStatementRenderer(StatementWorkbookCFG(), service.report()).render(str(path))

    wb = load_workbook(path)
    assert wb["Summary"]["A4"].value == "Campaign"
    assert wb["Summary"]["A5"].value is None
