import os
import sys

# Provide required auth secrets for tests if not already set
os.environ.setdefault("ENV_SECRET", "test-secret")
os.environ.setdefault("ENV_RESET_PASSWORD_TOKEN_SECRET", "test-reset-secret")
os.environ.setdefault("ENV_VERIFICATION_TOKEN_SECRET", "test-verify-secret")

# Ensure project root is on sys.path so `settings`, `budgets`, ... resolve
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


# --- Test utilities: Fake in-memory SurrealDB ---
import uuid

import httpx
import pytest_asyncio

from budgets import budget_repo
from categories import category_repo
from expenses import expense_repo
from users import user_repo

USER_ID = "user-alice"
OTHER_USER_ID = "user-bob"


def _owner_matches(rec: dict, vars: dict) -> bool:
    return rec.get("user_id") == vars.get("user_id")


class FakeAsyncSurreal:
    """Answers the repositories' SurrealQL statements from in-memory tables.

    Records come back with ``table:key`` ids, like the real client.
    """

    def __init__(self) -> None:
        self._tables = {"users": {}, "category": {}, "expense": {}, "budget": {}}
        self.queries = []
        self._handlers = {
            user_repo.SELECT_USER_BY_ID: lambda v: self._get("users", v["id"]),
            user_repo.SELECT_USER_BY_EMAIL: lambda v: self._where("users", lambda r: r.get("email") == v["email"]),
            user_repo.CREATE_USER: lambda v: self._create("users", v["data"]),
            user_repo.UPDATE_USER: lambda v: self._merge("users", v["id"], v["data"]),
            user_repo.DELETE_USER: lambda v: self._delete("users", v["id"]),
            category_repo.SELECT_VISIBLE_CATEGORIES: lambda v: sorted(
                self._where("category", lambda r: not r.get("user_id") or _owner_matches(r, v)),
                key=lambda r: r["name"],
            ),
            category_repo.SELECT_OWN_CATEGORIES: lambda v: sorted(
                self._where("category", lambda r: _owner_matches(r, v)), key=lambda r: r["name"]
            ),
            category_repo.SELECT_CATEGORY: lambda v: self._get("category", v["id"]),
            category_repo.SELECT_CATEGORIES_BY_NAME: lambda v: self._where(
                "category",
                lambda r: r["name"].lower() == v["name"].lower() and (not r.get("user_id") or _owner_matches(r, v)),
            ),
            category_repo.INSERT_CATEGORY: lambda v: self._create("category", v["data"]),
            category_repo.UPDATE_CATEGORY: lambda v: self._merge("category", v["id"], v["data"], v["user_id"]),
            category_repo.DELETE_CATEGORY: lambda v: self._delete("category", v["id"], v["user_id"]),
            expense_repo.INSERT_EXPENSE: lambda v: self._create("expense", v["data"]),
            expense_repo.SELECT_EXPENSE: lambda v: [r for r in self._get("expense", v["id"]) if _owner_matches(r, v)],
            expense_repo.UPDATE_EXPENSE: lambda v: self._merge("expense", v["id"], v["data"], v["user_id"]),
            expense_repo.DELETE_EXPENSE: lambda v: self._delete("expense", v["id"], v["user_id"]),
            expense_repo.SEARCH_EXPENSES: self._search_expenses,
            expense_repo.COUNT_EXPENSES: self._count_expenses,
            expense_repo.SELECT_EXPENSES_IN_RANGE: self._expenses_in_range,
            expense_repo.SELECT_EXPENSES_IN_RANGE_LIMITED: self._expenses_in_range,
            expense_repo.UNCATEGORIZE_EXPENSES: lambda v: self._set_where(
                "expense",
                lambda r: r.get("category_id") == v["category_id"] and _owner_matches(r, v),
                {"category_id": None, "category": "Uncategorized"},
            ),
            expense_repo.RENAME_EXPENSE_CATEGORY: lambda v: self._set_where(
                "expense", lambda r: r.get("category_id") == v["category_id"] and _owner_matches(r, v), {"category": v["name"]}
            ),
            budget_repo.INSERT_BUDGET: self._insert_budget,
            budget_repo.SELECT_BUDGET: lambda v: [r for r in self._get("budget", v["id"]) if _owner_matches(r, v)],
            budget_repo.LIST_BUDGETS: lambda v: sorted(
                self._where(
                    "budget",
                    lambda r: _owner_matches(r, v)
                    and (not v["period_start"] or r.get("period_start") == v["period_start"])
                    and (not v["category_id"] or r.get("category_id") == v["category_id"]),
                ),
                key=lambda r: r.get("period_start") or "",
                reverse=True,
            ),
            budget_repo.SELECT_BUDGETS_FOR_SLOT: lambda v: self._where(
                "budget",
                lambda r: _owner_matches(r, v)
                and r.get("category_id") == v["category_id"]
                and r.get("period_start") == v["period_start"],
            ),
            budget_repo.UPDATE_BUDGET: lambda v: self._merge("budget", v["id"], v["data"], v["user_id"]),
            budget_repo.DELETE_BUDGET: lambda v: self._delete("budget", v["id"], v["user_id"]),
            budget_repo.RENAME_BUDGET_CATEGORY: lambda v: self._set_where(
                "budget", lambda r: r.get("category_id") == v["category_id"] and _owner_matches(r, v), {"category": v["name"]}
            ),
        }

    # --- client surface used by the app ---
    async def query(self, query: str, vars: dict | None = None):
        self.queries.append(query)
        handler = self._handlers.get(query)
        if handler is None:
            # Default empty result for statements the tests do not model (e.g. schema DEFINEs)
            return []
        return handler(vars or {})

    async def close(self) -> None:
        pass

    # --- direct helpers for tests ---
    def seed(self, table: str, record: dict) -> str:
        return self._create(table, record)[0]["id"].split(":", 1)[1]

    def rows(self, table: str) -> list:
        return [{**r, "id": key} for key, r in self._tables[table].items()]

    def record(self, table: str, key: str) -> dict | None:
        rec = self._tables[table].get(key)
        return {**rec, "id": key} if rec else None

    # --- table operations ---
    def _out(self, table: str, key: str, rec: dict) -> dict:
        return {**rec, "id": f"{table}:{key}"}

    def _create(self, table: str, data: dict) -> list:
        key = uuid.uuid4().hex[:20]
        self._tables[table][key] = {k: v for k, v in data.items() if k != "id"}
        return [self._out(table, key, self._tables[table][key])]

    def _get(self, table: str, key: str) -> list:
        rec = self._tables[table].get(key)
        return [self._out(table, key, rec)] if rec is not None else []

    def _where(self, table: str, pred) -> list:
        return [self._out(table, key, rec) for key, rec in self._tables[table].items() if pred(rec)]

    def _merge(self, table: str, key: str, data: dict, owner: str | None = None) -> list:
        rec = self._tables[table].get(key)
        if rec is None or (owner is not None and rec.get("user_id") != owner):
            return []
        for field, value in data.items():
            if value is None:
                rec.pop(field, None)
            else:
                rec[field] = value
        return [self._out(table, key, rec)]

    def _delete(self, table: str, key: str, owner: str | None = None) -> list:
        rec = self._tables[table].get(key)
        if rec is None or (owner is not None and rec.get("user_id") != owner):
            return []
        del self._tables[table][key]
        return [self._out(table, key, rec)]

    def _set_where(self, table: str, pred, values: dict) -> list:
        changed = []
        for key, rec in self._tables[table].items():
            if pred(rec):
                for field, value in values.items():
                    if value is None:
                        rec.pop(field, None)
                    else:
                        rec[field] = value
                changed.append(self._out(table, key, rec))
        return changed

    def _insert_budget(self, v: dict) -> list:
        data = v["data"]
        slot = (data.get("user_id"), data.get("category_id"), data.get("period_start"))
        for rec in self._tables["budget"].values():
            if (rec.get("user_id"), rec.get("category_id"), rec.get("period_start")) == slot:
                raise RuntimeError("Database index `budget_unique` already contains [...]")
        return self._create("budget", data)

    def _filtered_expenses(self, v: dict) -> list:
        def matches(r: dict) -> bool:
            if r.get("user_id") != v["user_id"]:
                return False
            if v["from"] and r["date"] < v["from"]:
                return False
            if v["to"] and r["date"] > v["to"]:
                return False
            if v["category_ids"] and r.get("category_id") not in v["category_ids"]:
                return False
            if v["category"] and r.get("category") != v["category"]:
                return False
            if v["q"]:
                in_desc = v["q"] in (r.get("description") or "").lower()
                in_cat = v["q_category"] and v["q"] in (r.get("category") or "").lower()
                if not (in_desc or in_cat):
                    return False
            return True

        return sorted(self._where("expense", matches), key=lambda r: r["date"], reverse=True)

    def _search_expenses(self, v: dict) -> list:
        rows = self._filtered_expenses(v)
        return rows[v["start"]: v["start"] + v["limit"]]

    def _count_expenses(self, v: dict) -> list:
        total = len(self._filtered_expenses(v))
        return [{"total": total}] if total else []

    def _expenses_in_range(self, v: dict) -> list:
        rows = self._where(
            "expense",
            lambda r: r.get("user_id") == v["user_id"] and v["start"] <= r["date"] < v["end"],
        )
        rows.sort(key=lambda r: r["date"], reverse=True)
        if "limit" in v:
            return rows[: v["limit"]]
        return rows


@pytest_asyncio.fixture
async def fake_db():
    # Provide a fresh fake DB per test function
    db = FakeAsyncSurreal()
    yield db


@pytest_asyncio.fixture
async def app(fake_db):
    from auth.auth import get_current_user
    from main import app as fastapi_app
    from settings.db import get_db

    async def _get_db():
        return fake_db

    fastapi_app.dependency_overrides[get_db] = _get_db
    fastapi_app.dependency_overrides[get_current_user] = lambda: USER_ID
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def act_as(app):
    """Switch the authenticated user for subsequent requests."""
    from auth.auth import get_current_user

    def _act_as(user_id: str) -> None:
        app.dependency_overrides[get_current_user] = lambda: user_id

    return _act_as
