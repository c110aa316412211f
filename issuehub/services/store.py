"""
issuehub Row Store

The storage collaborator the core talks to. Only row-level CRUD:
get-by-id, insert, update-by-id, delete-by-id, filtered select.

Adapters must raise:
- SchemaDrift when a column is not recognized
- UpstreamUnavailable when the backend cannot be reached
- NotFound when a row addressed by id does not exist
"""

import copy
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from .errors import NotFound, SchemaDrift, UpstreamUnavailable

Row = Dict[str, Any]


class RowStore(ABC):

    @abstractmethod
    async def get(self, table: str, row_id: str) -> Row:
        """Fetch one row or raise NotFound."""

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert and return the stored row (with id/created_at)."""

    @abstractmethod
    async def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Row:
        """Partial update by id; returns the stored row."""

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        """Delete by id."""

    @abstractmethod
    async def select(
        self,
        table: str,
        eq: Optional[Mapping[str, Any]] = None,
        in_: Optional[Mapping[str, Iterable[Any]]] = None,
        any_of: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True
    ) -> List[Row]:
        """
        Filtered select.

        eq:     every column must equal the value
        in_:    every column must be one of the values
        any_of: at least one column must equal its value (OR group)
        """


class InMemoryRowStore(RowStore):
    """
    Dict-backed store for development and tests.

    ``known_columns`` simulates a storage schema: writes touching a
    column not listed for the table raise SchemaDrift, like a database
    that has not run the latest migration.
    """

    def __init__(self, known_columns: Optional[Mapping[str, Iterable[str]]] = None):
        self._tables: Dict[str, Dict[str, Row]] = {}
        self.known_columns = {
            table: set(columns) for table, columns in (known_columns or {}).items()
        }
        self.available = True
        self.writes: List[tuple] = []

    def _table(self, table: str) -> Dict[str, Row]:
        if not self.available:
            raise UpstreamUnavailable(f"Storage unavailable while reading '{table}'")
        return self._tables.setdefault(table, {})

    def _check_columns(self, table: str, row: Mapping[str, Any]) -> None:
        known = self.known_columns.get(table)
        if known is None:
            return
        for column in row:
            if column not in known:
                raise SchemaDrift(
                    f"Could not find the '{column}' column of '{table}'",
                    column=column
                )

    async def get(self, table: str, row_id: str) -> Row:
        row = self._table(table).get(str(row_id))
        if row is None:
            raise NotFound(f"No row {row_id} in {table}")
        return copy.deepcopy(row)

    async def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        rows = self._table(table)
        self._check_columns(table, row)
        stored = dict(row)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", datetime.utcnow().isoformat())
        rows[str(stored["id"])] = stored
        self.writes.append(("insert", table, dict(row)))
        return copy.deepcopy(stored)

    async def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Row:
        rows = self._table(table)
        if str(row_id) not in rows:
            raise NotFound(f"No row {row_id} in {table}")
        self._check_columns(table, changes)
        self.writes.append(("update", table, dict(changes)))
        rows[str(row_id)].update(changes)
        return copy.deepcopy(rows[str(row_id)])

    async def delete(self, table: str, row_id: str) -> None:
        self._table(table).pop(str(row_id), None)

    async def select(
        self,
        table: str,
        eq=None,
        in_=None,
        any_of=None,
        order_by="created_at",
        descending=True
    ) -> List[Row]:
        matches = []
        for row in self._table(table).values():
            if eq and any(row.get(k) != v for k, v in eq.items()):
                continue
            if in_ and any(row.get(k) not in set(v) for k, v in in_.items()):
                continue
            if any_of and not any(row.get(k) == v for k, v in any_of.items()):
                continue
            matches.append(copy.deepcopy(row))

        if order_by:
            matches.sort(
                key=lambda r: (r.get(order_by) is None, r.get(order_by) or 0),
                reverse=descending
            )
        return matches
