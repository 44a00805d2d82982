"""
Alert configuration, alert and daily snapshot repositories.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Type

from ..models.alert import Alert, AlertConfig, DailySnapshot
from .base import BaseRepository


class AlertConfigRepository(BaseRepository[AlertConfig]):
    default_order = "type ASC"

    def _get_table_name(self) -> str:
        return "alert_configs"

    def _get_model_class(self) -> Type[AlertConfig]:
        return AlertConfig


class AlertRepository(BaseRepository[Alert]):
    def _get_table_name(self) -> str:
        return "alerts"

    def _get_model_class(self) -> Type[Alert]:
        return Alert

    def unread(self, user_id: str) -> List[Alert]:
        return self.find_by(user_id=user_id, is_read=False)

    def recent(self, user_id: str, days: int = 7) -> List[Alert]:
        since = (datetime.now() - timedelta(days=days)).isoformat()
        return self.find_where("user_id = ? AND created_at >= ?", (user_id, since))

    def mark_all_read(self, user_id: str) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE alerts SET is_read = 1, updated_at = ? WHERE user_id = ? AND is_read = 0",
                (datetime.now().isoformat(), user_id),
            )
            return cursor.rowcount


class DailySnapshotRepository(BaseRepository[DailySnapshot]):
    json_fields = ("liquidity_by_company",)
    default_order = "snapshot_date DESC"

    def _get_table_name(self) -> str:
        return "daily_snapshots"

    def _get_model_class(self) -> Type[DailySnapshot]:
        return DailySnapshot

    def for_date(self, user_id: str, snapshot_date: str) -> Optional[DailySnapshot]:
        return self.find_one_by(user_id=user_id, snapshot_date=snapshot_date)
