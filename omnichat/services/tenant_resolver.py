from __future__ import annotations

import logging

from omnichat.core.config import META_DEFAULT_SHOP_ID, META_SHOP_MAP

logger = logging.getLogger(__name__)


def parse_shop_map(raw: str | None) -> dict[str, int]:
    """Parses ``"<businessId>:<tenantId>,..."``; malformed pairs are skipped."""
    mapping: dict[str, int] = {}
    for pair in (raw or "").split(","):
        if ":" not in pair:
            continue
        source_id, tenant_value = (part.strip() for part in pair.split(":", 1))
        if not source_id:
            continue
        try:
            mapping[source_id] = int(tenant_value)
        except ValueError:
            logger.warning("META_SHOP_MAP: invalid tenant id for source=%s", source_id)
    return mapping


def _parse_default(raw: str | int | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("META_DEFAULT_SHOP_ID is not a number: %s", raw)
        return None


class TenantResolver:
    """Resolves a provider business id to the owning tenant."""

    def __init__(self, mapping: dict[str, int] | None = None, default_tenant_id: int | None = None) -> None:
        self.mapping = dict(mapping or {})
        self.default_tenant_id = default_tenant_id

    @classmethod
    def from_env(cls) -> "TenantResolver":
        return cls(parse_shop_map(META_SHOP_MAP), _parse_default(META_DEFAULT_SHOP_ID))

    def resolve(self, business_id: str | None) -> int | None:
        if business_id and business_id in self.mapping:
            return self.mapping[business_id]
        return self.default_tenant_id
