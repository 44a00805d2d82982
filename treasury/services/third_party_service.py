"""
Third party directory with fuzzy duplicate detection.
"""

import re
import unicodedata
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config.settings import TreasuryConfig
from ..models.third_party import ThirdParty, ThirdPartyType
from ..models.transaction import TransactionType
from ..models.user import User
from ..repositories.third_party_repository import ThirdPartyRepository
from ..repositories.transaction_repository import TransactionRepository
from ..security.audit import AuditAction, AuditEntity
from .base import BaseService
from .exceptions import ConflictError, ValidationError
from .logging_service import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    """Lowercase, accent-free, alphanumeric form of a name used for matching."""
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _NON_ALNUM.sub("", stripped)
    return _SPACES.sub(" ", stripped).strip()


def levenshtein(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Similarity between 0 and 1 of two names after normalization."""
    s1, s2 = normalize_name(a), normalize_name(b)
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        return min(len(s1), len(s2)) / max(len(s1), len(s2))
    return 1 - levenshtein(s1, s2) / max(len(s1), len(s2))


class ThirdPartyService(BaseService):
    entity_label = "Third party"
    audit_entity = AuditEntity.THIRD_PARTY

    def __init__(
        self,
        third_party_repository: ThirdPartyRepository,
        transaction_repository: TransactionRepository,
        config: Optional[TreasuryConfig] = None,
        audit_logger=None,
    ):
        super().__init__(audit_logger)
        self.third_party_repository = third_party_repository
        self.transaction_repository = transaction_repository
        self.config = config or TreasuryConfig()

    def get_third_party(self, user: User, third_party_id: str) -> ThirdParty:
        return self._get_owned(self.third_party_repository, third_party_id, user)

    def search(
        self,
        user: User,
        text: Optional[str] = None,
        type: Optional[ThirdPartyType] = None,
        include_inactive: bool = False,
    ) -> List[ThirdParty]:
        """List third parties, optionally filtered by type and by name or CIF text."""
        results = self.third_party_repository.find_for_user(user.id, include_inactive)
        if type:
            results = [tp for tp in results if tp.type == type]
        text = (text or "").strip()
        if text:
            needle = normalize_name(text)
            lowered = text.lower()
            results = [
                tp
                for tp in results
                if (needle and needle in tp.normalized_name)
                or lowered in tp.display_name.lower()
                or (tp.cif and lowered in tp.cif.lower())
            ]
        return results

    def find_duplicates(self, user: User, name: str) -> List[Dict[str, Any]]:
        """Active third parties whose name is similar enough to ``name``, best first."""
        threshold = self.config.duplicate_similarity_threshold
        matches = []
        for tp in self.third_party_repository.find_for_user(user.id):
            score = similarity(name, tp.display_name)
            if score >= threshold:
                matches.append(
                    {
                        "id": tp.id,
                        "display_name": tp.display_name,
                        "type": tp.type,
                        "cif": tp.cif,
                        "similarity": round(score, 4),
                    }
                )
        matches.sort(key=lambda m: m["similarity"], reverse=True)
        return matches[: self.config.max_duplicate_suggestions]

    def create_third_party(self, user: User, third_party: ThirdParty) -> ThirdParty:
        third_party = self._prepare_new(third_party, user)
        if len(third_party.display_name.strip()) < 2:
            raise ValidationError("El nombre debe tener al menos 2 caracteres", field="display_name")
        third_party.normalized_name = normalize_name(third_party.display_name)
        existing = self.third_party_repository.find_one_by(
            user_id=user.id, normalized_name=third_party.normalized_name, is_active=True
        )
        if existing:
            raise ConflictError(
                f'Ya existe un tercero con nombre similar: "{existing.display_name}"',
                details={"id": existing.id, "display_name": existing.display_name},
            )
        third_party.is_active = True
        third_party.created_by = user.id
        saved = self.third_party_repository.save(third_party)
        self._audit(user, AuditAction.CREATE, saved.id, saved.display_name, new_value=saved)
        return saved

    def update_third_party(self, user: User, third_party_id: str, changes: Dict[str, Any]) -> ThirdParty:
        current = self.get_third_party(user, third_party_id)
        updated = self._apply_changes(current, changes, protected={"normalized_name", "created_by"})
        updated.normalized_name = normalize_name(updated.display_name)
        if updated.normalized_name != current.normalized_name and updated.is_active:
            clash = self.third_party_repository.find_one_by(
                user_id=user.id, normalized_name=updated.normalized_name, is_active=True
            )
            if clash and clash.id != current.id:
                raise ConflictError(f'Ya existe un tercero con nombre similar: "{clash.display_name}"')
        saved = self.third_party_repository.save(updated)
        self._audit(user, AuditAction.UPDATE, saved.id, saved.display_name, previous_value=current, new_value=saved)
        return saved

    def deactivate(self, user: User, third_party_id: str) -> ThirdParty:
        current = self.get_third_party(user, third_party_id)
        self.third_party_repository.update_fields(current.id, is_active=False)
        self._audit(user, AuditAction.DELETE, current.id, current.display_name)
        return self.third_party_repository.find_by_id(current.id)

    def touch_last_used(self, user: User, third_party_id: Optional[str]) -> None:
        if not third_party_id:
            return
        tp = self.third_party_repository.find_by_id(third_party_id)
        if tp is not None and tp.user_id == user.id:
            self.third_party_repository.update_fields(tp.id, last_used_at=datetime.now())

    def migrate_from_transactions(self, user: User) -> Dict[str, int]:
        """
        Create third parties from the free-text names found on transactions.

        Transactions that already reference a third party are left alone. A
        name seen only on incomes becomes a CUSTOMER, only on expenses a
        SUPPLIER, on both a MIXED third party.
        """
        grouped: Dict[str, Dict[str, Any]] = {}
        skipped = 0
        for tx in self.transaction_repository.search(user.id):
            if tx.third_party_id:
                skipped += 1
                continue
            name = (tx.third_party_name or "").strip()
            key = normalize_name(name)
            if not key:
                continue
            group = grouped.setdefault(key, {"display_name": name, "types": set(), "ids": []})
            group["types"].add(TransactionType(tx.type))
            group["ids"].append(tx.id)

        existing = {tp.normalized_name: tp.id for tp in self.third_party_repository.find_for_user(user.id)}
        created = linked = 0
        for key, group in grouped.items():
            third_party_id = existing.get(key)
            if third_party_id is None:
                saved = self.third_party_repository.save(
                    ThirdParty(
                        user_id=user.id,
                        type=self._type_for(group["types"]),
                        display_name=group["display_name"],
                        normalized_name=key,
                        last_used_at=datetime.now(),
                        notes="Creado automáticamente en migración",
                        created_by=user.id,
                    )
                )
                third_party_id = existing[key] = saved.id
                created += 1
            for tx_id in group["ids"]:
                self.transaction_repository.update_fields(tx_id, third_party_id=third_party_id)
            linked += len(group["ids"])

        logger.info("Third parties migrated", created=created, linked=linked, skipped=skipped)
        self._audit(user, AuditAction.IMPORT, details=f"{created} terceros creados, {linked} transacciones enlazadas")
        return {
            "third_parties_created": created,
            "transactions_updated": linked,
            "skipped_existing": skipped,
            "unique_names": len(grouped),
        }

    @staticmethod
    def _type_for(types: set) -> ThirdPartyType:
        if types == {TransactionType.INCOME}:
            return ThirdPartyType.CUSTOMER
        if types == {TransactionType.EXPENSE}:
            return ThirdPartyType.SUPPLIER
        return ThirdPartyType.MIXED
