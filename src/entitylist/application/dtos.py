from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..config import MAX_FETCH_LIMIT, SEARCH_SCOPE_ALL
from ..utils.text import normalize_value


@dataclass(frozen=True)
class AccessScope:
    """Resolved identity and tenant boundary the list operates under."""

    subject_id: str = "anonymous"
    tenant_id: str = ""
    can_manage_all: bool = False
    resolved: bool = True
    can_manage: bool = True

    @property
    def normalized_tenant_id(self) -> str:
        return normalize_value(self.tenant_id)

    @property
    def storage_scope(self) -> str:
        if self.can_manage_all:
            return SEARCH_SCOPE_ALL
        return self.normalized_tenant_id or "self"

    @property
    def can_fetch(self) -> bool:
        if not self.resolved or not self.can_manage:
            return False
        return self.can_manage_all or bool(self.normalized_tenant_id)

    def query_params(self, limit: int = MAX_FETCH_LIMIT) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": 1, "limit": limit}
        if not self.can_manage_all:
            params["tenant_id"] = self.normalized_tenant_id
        return params

    def can_access(self, owner_id: Any) -> bool:
        if self.can_manage_all:
            return True
        owner = normalize_value(owner_id)
        if not owner or not self.normalized_tenant_id:
            return True
        return owner == self.normalized_tenant_id


def resolve_subject(user: Optional[Mapping[str, Any]], tenant_id: Any = None) -> str:
    """Pick the stable identifier preferences and cache are keyed by."""
    user = user or {}
    for candidate in (user.get("id"), user.get("user_id"), user.get("email"), tenant_id):
        value = normalize_value(candidate)
        if value:
            return value
    return "anonymous"


def resolve_list_items(payload: Any) -> Optional[List[Any]]:
    """Return the records of a listing payload, or ``None`` when it carries none.

    An empty list is a real payload and is returned as such.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("items"), list):
        return payload["items"]
    return None


@dataclass
class BulkDeleteResult:
    requested: int = 0
    removed_count: int = 0
    removed_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.requested - len(self.skipped_ids)

    @property
    def is_partial(self) -> bool:
        return 0 < self.removed_count < self.attempted
