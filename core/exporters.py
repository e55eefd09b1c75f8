"""
Excel export of a user's transactions.
"""
from datetime import datetime
from io import BytesIO
from typing import List

import pandas as pd

from core.exceptions import ExportError
from core.logger import setup_logger
from core.schema import TransactionOut

logger = setup_logger(__name__)

SHEET_NAME = "Transactions"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_COLUMNS = [
    ("created_at", "Date"),
    ("party", "Party"),
    ("category", "Category"),
    ("type", "Type"),
    ("payment_method", "Payment Method"),
    ("currency", "Currency"),
    ("amount", "Amount"),
    ("description", "Description"),
]


def transactions_to_dataframe(transactions: List[TransactionOut]) -> pd.DataFrame:
    """
    Build the export table, one row per transaction.

    Args:
        transactions: Transactions in display order

    Returns:
        DataFrame with human-readable column headers
    """
    rows = []
    for txn in transactions:
        data = txn.model_dump()
        data["created_at"] = txn.created_at.strftime("%Y-%m-%d %H:%M")
        rows.append({header: data.get(field) for field, header in EXPORT_COLUMNS})

    return pd.DataFrame(rows, columns=[header for _, header in EXPORT_COLUMNS])


def export_to_excel(transactions: List[TransactionOut]) -> bytes:
    """
    Export transactions to an xlsx workbook.

    Args:
        transactions: Transactions to export

    Returns:
        Workbook content

    Raises:
        ExportError: If the workbook cannot be written
    """
    output_df = transactions_to_dataframe(transactions)
    logger.info(f"Exporting {len(output_df)} transactions")

    buffer = BytesIO()
    try:
        with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
            output_df.to_excel(writer, sheet_name=SHEET_NAME, index=False)

            workbook = writer.book
            worksheet = writer.sheets[SHEET_NAME]

            money_format = workbook.add_format({"num_format": "#,##0.00"})
            amount_idx = output_df.columns.get_loc("Amount")

            # Auto-fit columns (approximate)
            for idx, col in enumerate(output_df.columns):
                if len(output_df):
                    max_len = max(output_df[col].astype(str).map(len).max(), len(str(col)))
                else:
                    max_len = len(str(col))
                cell_format = money_format if idx == amount_idx else None
                worksheet.set_column(idx, idx, min(max_len + 2, 50), cell_format)

            worksheet.freeze_panes(1, 0)

        return buffer.getvalue()

    except Exception as e:
        logger.error(f"Failed to export Excel: {e}")
        raise ExportError(
            "Failed to export transactions to Excel",
            details={"error": str(e)}
        )


def create_export_filename() -> str:
    """Create timestamped download filename."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return f"transactions_{timestamp}.xlsx"
