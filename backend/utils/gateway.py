"""
Persistence gateway contract.

Engines only ever talk to tables through this interface:

    table = gateway.table("orders")
    rows = await table.select({"buyer_id": buyer_id}, order_by=[("created_at", -1)])
    order_id = await table.insert(row)
    await table.update(order_id, {"status": "completed"})
    await table.delete(order_id)

Filters are equality dicts; a value may also be {"$in": [...]} or {"$ne": x}.
Rows come back as plain dicts carrying a string "id".
Every call may raise PersistenceFailure.

The engines read-modify-write whole collections and re-derive their views
afterwards. That is fine for one client-side actor with hundreds of rows but
gives last-write-wins under concurrent writers.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

OrderBy = Optional[Iterable[tuple[str, int]]]


class Table(ABC):
    name: str

    @abstractmethod
    async def select(self, filter: dict | None = None, order_by: OrderBy = None) -> list[dict]:
        ...

    @abstractmethod
    async def insert(self, row: dict) -> str:
        ...

    @abstractmethod
    async def update(self, id: str, partial: dict) -> None:
        ...

    @abstractmethod
    async def delete(self, id: str) -> None:
        ...

    async def find_one(self, filter: dict) -> Optional[dict]:
        rows = await self.select(filter)
        return rows[0] if rows else None

    async def get(self, id: str) -> Optional[dict]:
        return await self.find_one({"id": id})


class PersistenceGateway(ABC):
    @abstractmethod
    def table(self, name: str) -> Table:
        ...


def matches_filter(row: dict, filter: dict | None) -> bool:
    """Evaluates the gateway filter dialect against a plain row."""
    for key, expected in (filter or {}).items():
        value = row.get(key)
        if isinstance(expected, dict):
            for op, operand in expected.items():
                if op == "$in" and value not in operand:
                    return False
                if op == "$ne" and value == operand:
                    return False
                if op not in ("$in", "$ne"):
                    raise ValueError(f"Unsupported filter operator: {op}")
        elif value != expected:
            return False
    return True


def sort_rows(rows: list[dict], order_by: OrderBy) -> list[dict]:
    # apply keys last-to-first so the first key wins, sorted() is stable
    for field, direction in reversed(list(order_by or [])):
        present = [r for r in rows if r.get(field) is not None]
        missing = [r for r in rows if r.get(field) is None]
        present = sorted(present, key=lambda r: _sort_key(r[field]), reverse=direction < 0)
        rows = present + missing
    return rows


def _sort_key(value: Any):
    return value.value if hasattr(value, "value") else value
