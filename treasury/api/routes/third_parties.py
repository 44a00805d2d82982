from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ...container import Container
from ...models.third_party import ThirdParty, ThirdPartyType
from ...models.user import User
from ..dependencies import container, current_user
from ..responses import ok

router = APIRouter(prefix="/third-parties", tags=["third-parties"])


@router.get("")
def search_third_parties(
    q: Optional[str] = None,
    type: Optional[ThirdPartyType] = None,
    include_inactive: bool = False,
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_third_party_service().search(user, q, type, include_inactive))


@router.get("/duplicates")
def check_duplicates(name: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_third_party_service().find_duplicates(user, name))


@router.post("", status_code=201)
def create_third_party(
    third_party: ThirdParty, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_third_party_service().create_third_party(user, third_party))


@router.post("/migrate")
def migrate(user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_third_party_service().migrate_from_transactions(user))


@router.get("/{third_party_id}")
def get_third_party(third_party_id: str, user: User = Depends(current_user), c: Container = Depends(container)):
    return ok(c.get_third_party_service().get_third_party(user, third_party_id))


@router.put("/{third_party_id}")
def update_third_party(
    third_party_id: str,
    changes: Dict[str, Any] = Body(...),
    user: User = Depends(current_user),
    c: Container = Depends(container),
):
    return ok(c.get_third_party_service().update_third_party(user, third_party_id, changes))


@router.delete("/{third_party_id}")
def deactivate_third_party(
    third_party_id: str, user: User = Depends(current_user), c: Container = Depends(container)
):
    return ok(c.get_third_party_service().deactivate(user, third_party_id))
