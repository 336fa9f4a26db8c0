"""BaseService: foundation for all typevault services.

Every service receives a :class:`Vault` at construction time and reads the
schema and documents through it. Schema failures are translated into
``ok=False`` results here so every operation reports them the same way.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from typevault.domain.resolver import SchemaResolutionError
from typevault.infrastructure.schema_store import SchemaLoadError
from typevault.services.result import ServiceResult

if TYPE_CHECKING:
    from typevault.domain.resolver import ResolvedSchema
    from typevault.infrastructure.vault import Vault

logger = logging.getLogger(__name__)

SCHEMA_NOT_FOUND = "SCHEMA_NOT_FOUND"
SCHEMA_INVALID = "SCHEMA_INVALID"


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class AuditService(BaseService):
            def audit(self) -> ServiceResult:
                schema = self._load_schema("audit")
                if isinstance(schema, ServiceResult):
                    return schema
                ...
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def _load_schema(self, op: str) -> ResolvedSchema | ServiceResult:
        """Resolve the vault schema, or return the failure result for *op*."""
        try:
            return self._vault.schema()
        except (SchemaLoadError, SchemaResolutionError) as exc:
            return self._schema_failure(op, exc)

    def _schema_failure(self, op: str, exc: SchemaLoadError | SchemaResolutionError) -> ServiceResult:
        logger.debug("Schema failure during %s: %s", op, exc)
        if isinstance(exc, SchemaLoadError):
            code = SCHEMA_NOT_FOUND if not exc.path.is_file() else SCHEMA_INVALID
            return ServiceResult.failure(op, code, str(exc), path=str(exc.path))
        detail = {"type": exc.type_name} if exc.type_name else {}
        return ServiceResult.failure(op, SCHEMA_INVALID, str(exc), **detail)
