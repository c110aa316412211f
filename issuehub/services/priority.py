"""
issuehub Priority Normalizer

Reconciles the legacy single-tier priority with the dual-tier scheme.

Legacy:   highest | high | medium | low | lowest
Internal: P1 .. P5
Client:   freeform label, never translated

Rules:
- internal_priority wins when both it and legacy are supplied
- legacy is only consulted when internal is absent
- neither supplied -> P3
- unrecognized tokens pass through unchanged (priority is advisory)
"""

from typing import Any, Dict, Optional

from ..models.issue import InternalPriority, LegacyPriority


class PriorityNormalizer:
    """
    Pure, table-driven translation in both directions.
    """

    LEGACY_TO_INTERNAL = {
        LegacyPriority.HIGHEST.value: InternalPriority.P1.value,
        LegacyPriority.HIGH.value: InternalPriority.P2.value,
        LegacyPriority.MEDIUM.value: InternalPriority.P3.value,
        LegacyPriority.LOW.value: InternalPriority.P4.value,
        LegacyPriority.LOWEST.value: InternalPriority.P5.value,
    }

    INTERNAL_TO_LEGACY = {v: k for k, v in LEGACY_TO_INTERNAL.items()}

    DEFAULT = InternalPriority.P3.value

    # Payload key of the legacy column
    LEGACY_FIELD = "priority"

    @classmethod
    def to_internal(cls, token: Any) -> Any:
        """Translate a legacy token; anything else is returned as-is."""
        if isinstance(token, str):
            return cls.LEGACY_TO_INTERNAL.get(token, token)
        return token

    @classmethod
    def to_legacy(cls, internal: Any) -> Any:
        """
        P1..P5 -> legacy token, for writes against the old schema.
        """
        if isinstance(internal, str):
            return cls.INTERNAL_TO_LEGACY.get(internal, internal)
        return internal

    @classmethod
    def normalize_on_create(
        cls,
        raw_internal: Optional[str] = None,
        raw_legacy: Optional[str] = None
    ) -> str:
        """
        Resolve the internal priority for a new issue.

        A legacy token sent in the internal slot (old clients) is
        translated as well.
        """
        if raw_internal:
            return cls.to_internal(raw_internal)
        if raw_legacy:
            return cls.to_internal(raw_legacy)
        return cls.DEFAULT

    @classmethod
    def normalize_payload(cls, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply the same rule to an update payload.

        Returns a copy; the legacy key is consumed and never forwarded.
        """
        result = dict(payload)
        legacy = result.pop(cls.LEGACY_FIELD, None)
        internal = result.get("internal_priority")

        if internal:
            result["internal_priority"] = cls.to_internal(internal)
        elif legacy:
            result["internal_priority"] = cls.to_internal(legacy)

        return result
