# tests/fakesupabase.py
"""In-memory stand-in for the async Supabase client.

Supports the query-builder subset the repositories use and enforces the unique
keys declared in the migrations, raising PostgREST ``APIError`` (23505) the way
the real service does. Every ``execute`` yields to the event loop once so that
concurrent requests interleave between their read and their write.
"""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from postgrest.exceptions import APIError

# table -> [(constraint name, columns, partial-index predicate)]
UNIQUE_KEYS: Dict[str, List[Tuple[str, Tuple[str, ...], Optional[Callable[[Dict[str, Any]], bool]]]]] = {
    "users": [("users_auth_subject_key", ("auth_subject",), None)],
    "courses": [("uq_courses_code_active", ("code",), lambda r: bool(r.get("is_active", True)))],
    "assignment_submissions": [
        (
            "uq_assignment_submissions_assignment_student",
            ("assignment_id", "student_id"),
            lambda r: r.get("assignment_id") is not None,
        )
    ],
    "quiz_submissions": [
        ("uq_quiz_submissions_student_course_quiz", ("student_id", "course_id", "quiz_index"), None)
    ],
}


class FakeResult:
    def __init__(self, data):
        self.data = data
        self.count = len(data)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", name: str):
        self._db = db
        self._name = name
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: List[Tuple[str, bool]] = []
        self._limit: Optional[int] = None

    # Verbs

    def select(self, *args, **kwargs):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op, self._payload = "insert", payload
        return self

    def update(self, fields):
        self._op, self._payload = "update", fields
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters

    def eq(self, field, value):
        self._filters.append(lambda r: r.get(field) == value)
        return self

    def in_(self, field, values):
        values_set = set(values or [])
        self._filters.append(lambda r: r.get(field) in values_set)
        return self

    def lt(self, field, value):
        self._filters.append(lambda r: r.get(field) is not None and r.get(field) < value)
        return self

    def order(self, field, desc: bool = False):
        self._order.append((field, desc))
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    # Execution

    def _matches(self) -> List[Dict[str, Any]]:
        return [row for row in self._db.rows(self._name) if all(f(row) for f in self._filters)]

    async def execute(self) -> FakeResult:
        await asyncio.sleep(0)
        self._db.calls.append((self._name, self._op))
        if self._db.fail_with is not None:
            raise self._db.fail_with
        if self._op == "insert":
            return FakeResult(self._db.insert(self._name, self._payload))
        if self._op == "update":
            matched = self._matches()
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResult(copy.deepcopy(matched))
        if self._op == "delete":
            matched = self._matches()
            table = self._db.rows(self._name)
            table[:] = [row for row in table if row not in matched]
            return FakeResult(copy.deepcopy(matched))

        rows = self._matches()
        for field, desc in reversed(self._order):
            rows.sort(key=lambda r: (r.get(field) is None, r.get(field) or ""), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        return FakeResult(copy.deepcopy(rows))


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, Iterable[Dict[str, Any]]]] = None):
        self._tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.calls: List[Tuple[str, str]] = []
        self.fail_with: Optional[BaseException] = None

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self._tables.setdefault(name, [])

    def insert(self, name: str, payload) -> List[Dict[str, Any]]:
        incoming = payload if isinstance(payload, list) else [payload]
        table = self.rows(name)
        for row in incoming:
            self._check_unique(name, row, table)
            table.append(copy.deepcopy(row))
        return copy.deepcopy(incoming)

    @staticmethod
    def _check_unique(name: str, row: Dict[str, Any], table: List[Dict[str, Any]]) -> None:
        for constraint, columns, predicate in UNIQUE_KEYS.get(name, []):
            if predicate is not None and not predicate(row):
                continue
            key = tuple(row.get(c) for c in columns)
            for existing in table:
                if predicate is not None and not predicate(existing):
                    continue
                if tuple(existing.get(c) for c in columns) == key:
                    raise APIError(
                        {
                            "message": f'duplicate key value violates unique constraint "{constraint}"',
                            "code": "23505",
                            "hint": None,
                            "details": f"Key ({', '.join(columns)}) already exists.",
                        }
                    )

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)
