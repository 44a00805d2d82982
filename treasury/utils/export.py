"""
CSV export of transactions using pandas.
"""

from typing import Iterable

import pandas as pd

from ..models.transaction import Transaction
from .currency_utils import CurrencyUtils

EXPORT_COLUMNS = {
    "due_date": "Vencimiento",
    "type": "Tipo",
    "status": "Estado",
    "category": "Categoría",
    "description": "Descripción",
    "third_party_name": "Tercero",
    "amount": "Importe",
    "invoice_number": "Factura",
    "paid_date": "Fecha pago",
    "company_id": "Empresa",
}


def transactions_to_dataframe(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Flatten transactions into a DataFrame with Spanish column headers."""
    records = [tx.model_dump(include=set(EXPORT_COLUMNS)) for tx in transactions]
    df = pd.DataFrame.from_records(records, columns=list(EXPORT_COLUMNS))
    if not df.empty:
        df["amount"] = df["amount"].map(lambda v: float(CurrencyUtils.round_amount(v)))
        df = df.sort_values("due_date", kind="stable")
    return df.rename(columns=EXPORT_COLUMNS)


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Semicolon separated CSV with decimal comma, as Spanish spreadsheets expect."""
    df = transactions_to_dataframe(transactions)
    return df.to_csv(index=False, sep=";", decimal=",")
