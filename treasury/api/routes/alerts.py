from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query

from ...container import Container
from ...models.alert import AlertConfig
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(tags=["alerts"])


# Configs

@router.get("/alert-configs")
def list_configs(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().list_configs(user))


@router.post("/alert-configs", status_code=201)
def create_config(config: AlertConfig, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().create_config(user, config))


@router.get("/alert-configs/{config_id}")
def get_config(config_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().get_config(user, config_id))


@router.put("/alert-configs/{config_id}")
def update_config(
    config_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_alert_service().update_config(user, config_id, changes))


@router.post("/alert-configs/{config_id}/toggle")
def toggle_config(config_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().toggle_config(user, config_id))


@router.delete("/alert-configs/{config_id}")
def delete_config(config_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    c.get_alert_service().delete_config(user, config_id)
    return ok({"deleted": True})


# Alerts

@router.get("/alerts")
def unread_alerts(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().unread(user))


@router.get("/alerts/recent")
def recent_alerts(
    days: int = Query(default=7, ge=1, le=90), user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_alert_service().recent(user, days))


@router.post("/alerts/evaluate")
def evaluate_alerts(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().evaluate_alerts(user))


@router.post("/alerts/read-all")
def mark_all_read(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok({"updated": c.get_alert_service().mark_all_read(user)})


@router.post("/alerts/{alert_id}/read")
def mark_read(alert_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_alert_service().mark_read(user, alert_id))
