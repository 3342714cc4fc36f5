"""Campaign statement workbook (Summary, Investments, Withdrawals)."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from campaign_ledger.blocks import BlockContext, BlockExecutor, default_report_blocks
from campaign_ledger.engine import LedgerReport
from campaign_ledger.errors import NotFoundError
from campaign_ledger.schemas import InvestmentStatus, StatementWorkbookCFG

# (frame column, header, number format, width)
Column = Tuple[str, str, Optional[str], int]

MONEY = '$#,##0.00'
PERCENT = '0.00%'
DATETIME = 'yyyy-mm-dd hh:mm'

SUMMARY_COLUMNS: List[Column] = [
    ("campaign_id", "Campaign", None, 22),
    ("company_name", "Company", None, 26),
    ("status", "Status", None, 12),
    ("funding_goal", "Goal", MONEY, 15),
    ("total_raised", "Raised", MONEY, 15),
    ("investor_count", "Investors", '#,##0', 11),
    ("progress_percent", "Progress", PERCENT, 11),
    ("in_flight_amount", "In flight", MONEY, 15),
    ("total_fees", "Fees", MONEY, 13),
    ("total_withdrawn", "Withdrawn", MONEY, 15),
    ("available_balance", "Available", MONEY, 15),
]

INVESTMENT_SHEET_COLUMNS: List[Column] = [
    ("investment_id", "Investment", None, 22),
    ("campaign_id", "Campaign", None, 22),
    ("investor_id", "Investor", None, 18),
    ("region", "Region", None, 14),
    ("status", "Status", None, 18),
    ("amount", "Amount", MONEY, 14),
    ("fee_tier", "Fee tier", None, 12),
    ("fee_percentage", "Fee %", PERCENT, 9),
    ("fee_amount", "Fee", MONEY, 12),
    ("net_amount", "Net", MONEY, 14),
    ("agreement_signed", "Signed", None, 8),
    ("created_at", "Created", DATETIME, 17),
    ("completed_at", "Completed", DATETIME, 17),
]

WITHDRAWAL_SHEET_COLUMNS: List[Column] = [
    ("withdrawal_id", "Withdrawal", None, 22),
    ("campaign_id", "Campaign", None, 22),
    ("founder_id", "Founder", None, 18),
    ("amount", "Amount", MONEY, 14),
    ("status", "Status", None, 12),
    ("requested_at", "Requested", DATETIME, 17),
    ("processed_at", "Processed", DATETIME, 17),
    ("admin_notes", "Notes", None, 30),
]

# Columns stored on a 0-100 scale that Excel shows as percentages
_PERCENT_SCALE = {"progress_percent", "fee_percentage"}

_INACTIVE = {InvestmentStatus.FAILED.value, InvestmentStatus.CANCELLED.value}


def _cell_value(value):
    """Convert a frame value into something openpyxl can write."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        if isinstance(value, pd.Timestamp):
            value = value.to_pydatetime()
        # Excel has no timezones; store UTC wall time
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, float) and pd.isna(value):
        return None
    if hasattr(value, "item"):
        # numpy scalar
        return value.item()
    return value


class CampaignStatementRenderer:
    """Render a ledger report as an .xlsx statement.

    Example:
        renderer = CampaignStatementRenderer(
            StatementWorkbookCFG(title="Acme seed statement"),
            service.report(),
        )
        renderer.render("statement.xlsx")
    """

    def __init__(self, config: StatementWorkbookCFG, report: LedgerReport):
        self.config = config
        self.report = report

        self.bold_font = Font(bold=True)
        self.title_font = Font(size=14, bold=True)
        self.muted_font = Font(italic=True, color="595959")

        # White text on dark blue
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")

        # Greyed-out rows for failed/cancelled investments
        self.inactive_font = Font(color="808080")

        self.totals_border = Border(top=Side(style='medium'), bottom=Side(style='medium'))
        self.center_align = Alignment(horizontal='center', vertical='center')

        self._frames: Optional[Dict[str, pd.DataFrame]] = None

    def render(self, output_path: str) -> str:
        wb = self.build_workbook()
        wb.save(output_path)
        return output_path

    def build_workbook(self) -> Workbook:
        frames = self.frames()

        wb = Workbook()
        wb.remove(wb.active)

        self._render_summary(wb, frames)
        if self.config.include_investments:
            self._render_investments(wb, frames["investments_frame"])
        if self.config.include_withdrawals:
            self._render_withdrawals(wb, frames["withdrawals_frame"])

        return wb

    # ------------------------------------------------------------------ #
    # Frames
    # ------------------------------------------------------------------ #

    def frames(self) -> Dict[str, pd.DataFrame]:
        """Report frames restricted to the configured campaigns."""
        if self._frames is not None:
            return self._frames

        context = BlockContext()
        context.set("ledger_report", self.report)
        BlockExecutor(default_report_blocks()).execute(context)

        keys = [
            "investments_frame",
            "withdrawals_frame",
            "campaign_stats_frame",
            "campaign_balances_frame",
        ]
        frames = {key: context.get(key) for key in keys}

        wanted = self.config.campaign_ids
        if wanted is not None:
            known = set(frames["campaign_stats_frame"]["campaign_id"])
            for campaign_id in wanted:
                if campaign_id not in known:
                    raise NotFoundError("campaign", campaign_id)
            frames = {
                key: df[df["campaign_id"].isin(wanted)].reset_index(drop=True)
                for key, df in frames.items()
            }

        self._frames = frames
        return frames

    # ------------------------------------------------------------------ #
    # Sheets
    # ------------------------------------------------------------------ #

    def _render_summary(self, wb: Workbook, frames: Dict[str, pd.DataFrame]) -> None:
        sheet = wb.create_sheet(title="Summary")
        sheet.sheet_view.showGridLines = False

        title_cell = sheet["A1"]
        title_cell.value = self.config.title
        title_cell.font = self.title_font

        generated = sheet["A2"]
        generated.value = f"Generated {_cell_value(self.report.generated_at):%Y-%m-%d %H:%M} UTC"
        generated.font = self.muted_font

        summary = frames["campaign_stats_frame"].merge(
            frames["campaign_balances_frame"].drop(columns=["total_raised"]),
            on="campaign_id",
            how="left",
        )

        header_row = 4
        last_row = self._write_table(sheet, summary, SUMMARY_COLUMNS, header_row)

        # Totals (only money and count columns add up)
        if last_row > header_row:
            totals_row = last_row + 1
            label = sheet.cell(row=totals_row, column=1, value="Totals")
            label.font = self.bold_font
            label.border = self.totals_border
            for idx, (column, _, number_format, _) in enumerate(SUMMARY_COLUMNS, start=1):
                if number_format not in (MONEY, '#,##0'):
                    continue
                letter = get_column_letter(idx)
                cell = sheet.cell(row=totals_row, column=idx)
                cell.value = f"=SUM({letter}{header_row + 1}:{letter}{last_row})"
                cell.font = self.bold_font
                cell.border = self.totals_border
                cell.number_format = number_format

        sheet.freeze_panes = f"B{header_row + 1}"

    def _render_investments(self, wb: Workbook, investments: pd.DataFrame) -> None:
        sheet = wb.create_sheet(title="Investments")

        if not self.config.include_inactive_investments:
            investments = investments[~investments["status"].isin(_INACTIVE)]

        self._write_table(sheet, investments, INVESTMENT_SHEET_COLUMNS, header_row=1)

        status_idx = [c[0] for c in INVESTMENT_SHEET_COLUMNS].index("status") + 1
        for row in range(2, sheet.max_row + 1):
            if sheet.cell(row=row, column=status_idx).value in _INACTIVE:
                for col in range(1, len(INVESTMENT_SHEET_COLUMNS) + 1):
                    sheet.cell(row=row, column=col).font = self.inactive_font

        sheet.freeze_panes = "A2"

    def _render_withdrawals(self, wb: Workbook, withdrawals: pd.DataFrame) -> None:
        sheet = wb.create_sheet(title="Withdrawals")
        self._write_table(sheet, withdrawals, WITHDRAWAL_SHEET_COLUMNS, header_row=1)
        sheet.freeze_panes = "A2"

    def _write_table(self, sheet, df: pd.DataFrame, columns: List[Column], header_row: int) -> int:
        """Write a header row and one row per frame record; returns the last row written."""
        for idx, (_, header, _, width) in enumerate(columns, start=1):
            cell = sheet.cell(row=header_row, column=idx, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.center_align
            sheet.column_dimensions[get_column_letter(idx)].width = width

        row = header_row
        for record in df.to_dict(orient="records"):
            row += 1
            for idx, (column, _, number_format, _) in enumerate(columns, start=1):
                value = record.get(column)
                if column in _PERCENT_SCALE and value is not None and not pd.isna(value):
                    value = Decimal(value) / Decimal("100")
                cell = sheet.cell(row=row, column=idx, value=_cell_value(value))
                if number_format:
                    cell.number_format = number_format
        return row


__all__ = ["CampaignStatementRenderer"]
