"""
issuehub Mutation Sanitizer

Strips everything outside the permitted field mask before a write
reaches storage.

Degraded-schema fallback: when storage rejects a column it does not
know, the write is retried ONCE with a payload limited to the columns
every deployed schema has. A second rejection is a hard error; the fix
is a migration, not another retry.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from .errors import SchemaDrift, SchemaDriftUnrecoverable
from .priority import PriorityNormalizer

logger = logging.getLogger(__name__)


class MutationSanitizer:

    # Columns present in every issues schema we have shipped
    STABLE_FIELDS = frozenset({
        "summary",
        "description",
        "status",
        "story_points",
        "labels",
        "due_date",
        "estimated_days",
        "actual_days",
        "exposed_to_client",
    })

    @staticmethod
    def sanitize(payload: Mapping[str, Any], field_mask: Iterable[str]) -> Dict[str, Any]:
        """Keep only keys in ``field_mask``. Idempotent."""
        allowed = frozenset(field_mask)
        return {k: v for k, v in payload.items() if k in allowed}

    @classmethod
    def degraded_payload(
        cls,
        payload: Mapping[str, Any],
        rejected_column: Optional[str] = None,
        keep: Iterable[str] = ()
    ) -> Dict[str, Any]:
        """
        Reduce ``payload`` to the stable set plus ``keep``.

        internal_priority is written back as the legacy ``priority``
        token. The column storage reported as unknown is always dropped.
        """
        stable = cls.STABLE_FIELDS | frozenset(keep)
        reduced = {k: v for k, v in payload.items() if k in stable}

        internal = payload.get("internal_priority")
        if internal:
            reduced[PriorityNormalizer.LEGACY_FIELD] = PriorityNormalizer.to_legacy(internal)

        if rejected_column:
            reduced.pop(rejected_column, None)
        return reduced

    async def write_with_fallback(
        self,
        write: Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]],
        payload: Mapping[str, Any],
        context: str = "issue",
        keep: Iterable[str] = ()
    ) -> Dict[str, Any]:
        """
        Run ``write(payload)``; on SchemaDrift retry once, degraded.
        """
        try:
            return await write(dict(payload))
        except SchemaDrift as exc:
            reduced = self.degraded_payload(
                payload, rejected_column=exc.column, keep=keep
            )
            dropped = sorted(set(payload) - set(reduced))
            logger.warning(
                "Schema drift writing %s (column=%s); retrying with reduced payload, dropped=%s",
                context, exc.column, dropped
            )

        try:
            return await write(reduced)
        except SchemaDrift as exc:
            logger.error(
                "Schema drift persisted after fallback writing %s (column=%s)",
                context, exc.column
            )
            raise SchemaDriftUnrecoverable(
                f"Storage rejected column '{exc.column}' after fallback.",
                column=exc.column
            ) from exc
