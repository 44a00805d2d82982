"""Database initialization utilities."""

import logging
from typing import Dict, List

from ..repositories.base import DatabaseConnection

logger = logging.getLogger(__name__)

_BASE = "id TEXT PRIMARY KEY, created_at TEXT, updated_at TEXT"
_OWNED = _BASE + ", user_id TEXT NOT NULL"

TABLES: Dict[str, str] = {
    "users": f"""
        {_BASE},
        email TEXT UNIQUE NOT NULL,
        display_name TEXT,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'TREASURY_MANAGER',
        is_active INTEGER NOT NULL DEFAULT 1,
        last_login TEXT
    """,
    "audit_logs": f"""
        {_BASE},
        user_id TEXT,
        user_email TEXT,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT,
        entity_name TEXT,
        details TEXT,
        previous_value TEXT,
        new_value TEXT,
        success INTEGER NOT NULL DEFAULT 1,
        error_message TEXT
    """,
    "companies": f"""
        {_OWNED},
        code TEXT,
        name TEXT NOT NULL,
        cif TEXT,
        color TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE'
    """,
    "accounts": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        bank_name TEXT NOT NULL,
        alias TEXT,
        account_number TEXT,
        current_balance TEXT NOT NULL DEFAULT '0',
        last_update_amount TEXT NOT NULL DEFAULT '0',
        last_update_date TEXT,
        last_updated_by TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        is_primary INTEGER NOT NULL DEFAULT 0
    """,
    "account_holds": f"""
        {_OWNED},
        account_id TEXT NOT NULL,
        company_id TEXT,
        concept TEXT NOT NULL,
        amount TEXT NOT NULL,
        start_date TEXT NOT NULL,
        end_date TEXT,
        type TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        reference TEXT,
        notes TEXT,
        released_at TEXT,
        released_by TEXT
    """,
    "credit_lines": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        bank_name TEXT NOT NULL,
        alias TEXT,
        line_type TEXT NOT NULL DEFAULT 'CREDIT',
        credit_limit TEXT NOT NULL,
        current_drawn TEXT NOT NULL DEFAULT '0',
        available TEXT NOT NULL DEFAULT '0',
        interest_rate TEXT NOT NULL DEFAULT '0',
        expiry_date TEXT,
        auto_draw_threshold TEXT,
        account_id TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE'
    """,
    "credit_cards": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        bank_name TEXT NOT NULL,
        card_alias TEXT,
        card_number_last4 TEXT NOT NULL,
        card_holder TEXT,
        credit_limit TEXT NOT NULL,
        current_balance TEXT NOT NULL DEFAULT '0',
        available_credit TEXT NOT NULL DEFAULT '0',
        cutoff_day INTEGER NOT NULL,
        payment_due_day INTEGER NOT NULL,
        charge_account_id TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE'
    """,
    "loans": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        bank_name TEXT NOT NULL,
        alias TEXT,
        original_principal TEXT NOT NULL DEFAULT '0',
        interest_rate TEXT NOT NULL DEFAULT '0',
        monthly_payment TEXT NOT NULL,
        payment_day INTEGER NOT NULL,
        charge_account_id TEXT NOT NULL,
        remaining_balance TEXT NOT NULL DEFAULT '0',
        remaining_installments INTEGER NOT NULL,
        first_pending_date TEXT NOT NULL,
        end_date TEXT,
        paid_installments INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        notes TEXT,
        created_by TEXT
    """,
    "transactions": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        account_id TEXT,
        type TEXT NOT NULL,
        amount TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'PENDING',
        due_date TEXT NOT NULL,
        paid_date TEXT,
        category TEXT,
        description TEXT,
        third_party_id TEXT,
        third_party_name TEXT,
        notes TEXT,
        invoice_number TEXT,
        supplier_invoice_number TEXT,
        supplier_bank_account TEXT,
        payment_method TEXT,
        charge_account_id TEXT,
        recurrence TEXT NOT NULL DEFAULT 'NONE',
        certainty TEXT NOT NULL DEFAULT 'MEDIUM',
        recurrence_id TEXT,
        recurrence_version_id TEXT,
        is_recurrence_instance INTEGER NOT NULL DEFAULT 0,
        instance_date TEXT,
        overridden_from_recurrence INTEGER NOT NULL DEFAULT 0,
        loan_id TEXT,
        loan_installment_number INTEGER,
        payment_order_id TEXT,
        payment_order_number TEXT,
        created_by TEXT,
        last_updated_by TEXT
    """,
    "recurrences": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        type TEXT NOT NULL,
        name TEXT NOT NULL,
        base_amount TEXT NOT NULL,
        category TEXT,
        third_party_id TEXT,
        third_party_name TEXT,
        account_id TEXT,
        payment_method TEXT,
        charge_account_id TEXT,
        certainty TEXT NOT NULL DEFAULT 'MEDIUM',
        notes TEXT,
        frequency TEXT NOT NULL,
        day_of_month INTEGER,
        day_of_week INTEGER,
        start_date TEXT NOT NULL,
        end_date TEXT,
        generate_months_ahead INTEGER NOT NULL DEFAULT 6,
        last_generated_date TEXT,
        next_occurrence_date TEXT,
        current_version_id TEXT,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        created_by TEXT,
        last_updated_by TEXT
    """,
    "recurrence_versions": f"""
        {_OWNED},
        recurrence_id TEXT NOT NULL,
        amount TEXT NOT NULL,
        effective_from TEXT NOT NULL,
        effective_to TEXT,
        change_reason TEXT,
        version_number INTEGER NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_by TEXT
    """,
    "third_parties": f"""
        {_OWNED},
        type TEXT NOT NULL,
        display_name TEXT NOT NULL,
        normalized_name TEXT NOT NULL,
        cif TEXT,
        email TEXT,
        phone TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        last_used_at TEXT,
        avg_payment_delay INTEGER,
        total_volume_12m TEXT,
        notes TEXT,
        created_by TEXT
    """,
    "workers": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        display_name TEXT NOT NULL,
        identifier TEXT,
        alias TEXT,
        iban TEXT NOT NULL,
        bank_alias TEXT,
        default_amount TEXT,
        default_extra_amount TEXT,
        number_of_payments INTEGER NOT NULL DEFAULT 14,
        extras_prorated INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        notes TEXT
    """,
    "payroll_batches": f"""
        {_OWNED},
        company_id TEXT NOT NULL,
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        payroll_type TEXT NOT NULL,
        title TEXT,
        total_amount TEXT NOT NULL DEFAULT '0',
        worker_count INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'DRAFT',
        due_date TEXT,
        confirmed_at TEXT,
        confirmed_by TEXT,
        parent_transaction_id TEXT,
        payment_order_id TEXT,
        payment_order_number TEXT,
        notes TEXT,
        created_by TEXT
    """,
    "payroll_lines": f"""
        {_OWNED},
        payroll_batch_id TEXT NOT NULL,
        company_id TEXT NOT NULL,
        worker_id TEXT NOT NULL,
        worker_name TEXT NOT NULL,
        iban_snapshot TEXT,
        bank_alias_snapshot TEXT,
        amount TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'PENDING',
        due_date TEXT,
        paid_date TEXT,
        payment_order_id TEXT,
        notes TEXT
    """,
    "payment_orders": f"""
        {_OWNED},
        order_number TEXT,
        title TEXT NOT NULL,
        description TEXT,
        company_id TEXT,
        company_name TEXT,
        default_charge_account_id TEXT,
        items TEXT NOT NULL DEFAULT '[]',
        total_amount TEXT NOT NULL DEFAULT '0',
        item_count INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'AUTHORIZED',
        authorized_by TEXT,
        authorized_by_name TEXT,
        authorized_at TEXT,
        executed_by TEXT,
        executed_by_name TEXT,
        executed_at TEXT,
        notes_for_finance TEXT
    """,
    "monthly_budgets": f"""
        {_OWNED},
        year INTEGER NOT NULL,
        month INTEGER NOT NULL,
        income_goal TEXT NOT NULL,
        notes TEXT,
        UNIQUE (user_id, year, month)
    """,
    "user_settings": f"""
        {_OWNED},
        monthly_income_target TEXT NOT NULL DEFAULT '0',
        show_income_layers INTEGER NOT NULL DEFAULT 1,
        default_forecast_months INTEGER NOT NULL DEFAULT 4,
        UNIQUE (user_id)
    """,
    "alert_configs": f"""
        {_OWNED},
        type TEXT NOT NULL,
        threshold TEXT NOT NULL,
        enabled INTEGER NOT NULL DEFAULT 1,
        notify_email INTEGER NOT NULL DEFAULT 0,
        notify_in_app INTEGER NOT NULL DEFAULT 1,
        company_id TEXT
    """,
    "alerts": f"""
        {_OWNED},
        config_id TEXT,
        type TEXT NOT NULL,
        message TEXT NOT NULL,
        severity TEXT NOT NULL,
        value TEXT,
        threshold TEXT,
        company_id TEXT,
        is_read INTEGER NOT NULL DEFAULT 0
    """,
    "daily_snapshots": f"""
        {_OWNED},
        snapshot_date TEXT NOT NULL,
        total_liquidity TEXT NOT NULL,
        total_credit_available TEXT NOT NULL,
        net_position TEXT NOT NULL,
        runway_days INTEGER NOT NULL,
        liquidity_by_company TEXT,
        UNIQUE (user_id, snapshot_date)
    """,
}

INDEXES: List[str] = [
    "CREATE INDEX IF NOT EXISTS idx_companies_user ON companies (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_accounts_user ON accounts (user_id, company_id)",
    "CREATE INDEX IF NOT EXISTS idx_holds_account ON account_holds (account_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_user_due ON transactions (user_id, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_recurrence ON transactions (recurrence_id, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_loan ON transactions (loan_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_order ON transactions (payment_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_recurrence_versions ON recurrence_versions (recurrence_id, version_number)",
    "CREATE INDEX IF NOT EXISTS idx_third_parties_name ON third_parties (user_id, normalized_name)",
    "CREATE INDEX IF NOT EXISTS idx_payroll_lines_batch ON payroll_lines (payroll_batch_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_logs (entity_type, entity_id)",
]


def init_db(db: DatabaseConnection) -> None:
    """Create every table and index if missing."""
    with db.get_connection() as conn:
        cursor = conn.cursor()
        for table, columns in TABLES.items():
            cursor.execute(f"CREATE TABLE IF NOT EXISTS {table} ({columns})")
        for statement in INDEXES:
            cursor.execute(statement)
    logger.info(f"Database schema initialized at {db.db_path} ({len(TABLES)} tables)")


def get_database_info(db: DatabaseConnection) -> Dict[str, int]:
    """Row counts per table, used by the health endpoint."""
    info = {}
    with db.get_connection() as conn:
        for table in TABLES:
            row = conn.execute(f"SELECT COUNT(*) AS total FROM {table}").fetchone()
            info[table] = row["total"]
    return info
