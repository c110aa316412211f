"""
issuehub Profile Directory

Resolves user ids to {id, email} for display on issues, comments and
user listings. Ids without a profile show as "Unknown".
"""

from typing import Any, Dict, Iterable, List, Mapping

from ..models.issue import Profile
from .store import RowStore

PROFILES = "profiles"


class ProfileDirectory:

    def __init__(self, store: RowStore):
        self.store = store

    async def lookup(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        rows = await self.store.select(PROFILES, in_={"id": ids}, order_by=None)
        return {
            row["id"]: Profile(id=row["id"], email=row.get("email") or "Unknown").model_dump()
            for row in rows
        }

    @staticmethod
    def person(profiles: Mapping[str, Dict[str, Any]], user_id):
        if not user_id:
            return None
        return profiles.get(user_id) or Profile(id=user_id).model_dump()

    async def attach(
        self,
        records: List[Dict[str, Any]],
        fields: Mapping[str, str]
    ) -> List[Dict[str, Any]]:
        """
        Add a person object per ``fields`` entry (id column -> output key).

        One profile query for the whole batch.
        """
        ids = [record.get(column) for record in records for column in fields]
        profiles = await self.lookup(ids)

        enriched = []
        for record in records:
            item = dict(record)
            for column, key in fields.items():
                item[key] = self.person(profiles, record.get(column))
            enriched.append(item)
        return enriched
