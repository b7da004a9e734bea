import pytest

from tests.conftest import OTHER_USER_ID, USER_ID


def _seed_global(fake_db, name):
    return fake_db.seed("category", {"name": name, "color": None})


@pytest.mark.asyncio
async def test_list_includes_global_and_own_only(client, fake_db):
    _seed_global(fake_db, "Food")
    fake_db.seed("category", {"name": "Pets", "user_id": USER_ID})
    fake_db.seed("category", {"name": "Boat", "user_id": OTHER_USER_ID})

    res = await client.get("/api/categories")
    assert res.status_code == 200
    data = res.json()["data"]
    assert {(c["name"], c["type"]) for c in data} == {("Food", "Global"), ("Pets", "Custom")}

    res = await client.get("/api/categories", params={"includeGlobal": "false"})
    assert [c["name"] for c in res.json()["data"]] == ["Pets"]


@pytest.mark.asyncio
async def test_create_category(client):
    res = await client.post("/api/categories", json={"name": "  Gym  ", "color": "#000"})
    assert res.status_code == 201
    body = res.json()["data"]
    assert body["name"] == "Gym"
    assert body["userId"] == USER_ID
    assert body["type"] == "Custom"


@pytest.mark.asyncio
async def test_create_rejects_name_of_global_category_case_insensitively(client, fake_db):
    _seed_global(fake_db, "Food")
    res = await client.post("/api/categories", json={"name": "FOOD"})
    assert res.status_code == 409
    assert res.json()["error"] == "category_exists"


@pytest.mark.asyncio
async def test_create_rejects_duplicate_own_name(client):
    assert (await client.post("/api/categories", json={"name": "Gym"})).status_code == 201
    res = await client.post("/api/categories", json={"name": "gym"})
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_other_user_may_reuse_a_custom_name(client, act_as):
    assert (await client.post("/api/categories", json={"name": "Gym"})).status_code == 201
    act_as(OTHER_USER_ID)
    res = await client.post("/api/categories", json={"name": "Gym"})
    assert res.status_code == 201


@pytest.mark.asyncio
async def test_blank_name_is_a_validation_error(client):
    res = await client.post("/api/categories", json={"name": "   "})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "validation_error"
    assert body["details"][0]["path"] == "name"


@pytest.mark.asyncio
async def test_get_category_hides_other_users(client, fake_db):
    foreign = fake_db.seed("category", {"name": "Boat", "user_id": OTHER_USER_ID})
    glob = _seed_global(fake_db, "Food")

    assert (await client.get(f"/api/categories/{foreign}")).status_code == 404
    res = await client.get(f"/api/categories/{glob}")
    assert res.status_code == 200
    assert res.json()["data"]["type"] == "Global"


@pytest.mark.asyncio
async def test_global_category_is_read_only(client, fake_db):
    glob = _seed_global(fake_db, "Food")

    res = await client.put(f"/api/categories/{glob}", json={"name": "Meals"})
    assert res.status_code == 403
    assert res.json()["error"] == "forbidden"

    res = await client.delete(f"/api/categories/{glob}")
    assert res.status_code == 403
    assert fake_db.record("category", glob) is not None


@pytest.mark.asyncio
async def test_rename_conflicts_with_global_name(client, fake_db):
    _seed_global(fake_db, "Food")
    own = fake_db.seed("category", {"name": "Snacks", "user_id": USER_ID})
    res = await client.patch(f"/api/categories/{own}", json={"name": "food"})
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_update_requires_a_field(client, fake_db):
    own = fake_db.seed("category", {"name": "Snacks", "user_id": USER_ID})
    res = await client.patch(f"/api/categories/{own}", json={})
    assert res.status_code == 400
    assert res.json()["error"] == "no_updates"


@pytest.mark.asyncio
async def test_rename_propagates_to_expenses_and_budgets(client, fake_db):
    own = fake_db.seed("category", {"name": "Snacks", "user_id": USER_ID})
    expense = fake_db.seed("expense", {"user_id": USER_ID, "category_id": own, "category": "Snacks", "amount": 3, "currency": "USD", "date": "2025-01-01T00:00:00.000Z"})
    budget = fake_db.seed("budget", {"user_id": USER_ID, "category_id": own, "category": "Snacks", "amount": 50, "period_start": "2025-01-01T00:00:00.000Z"})

    res = await client.put(f"/api/categories/{own}", json={"name": "Treats"})
    assert res.status_code == 200
    assert res.json()["data"]["name"] == "Treats"
    assert fake_db.record("expense", expense)["category"] == "Treats"
    assert fake_db.record("budget", budget)["category"] == "Treats"


@pytest.mark.asyncio
async def test_delete_uncategorizes_expenses(client, fake_db):
    own = fake_db.seed("category", {"name": "Snacks", "user_id": USER_ID})
    expense = fake_db.seed("expense", {"user_id": USER_ID, "category_id": own, "category": "Snacks", "amount": 3, "currency": "USD", "date": "2025-01-01T00:00:00.000Z"})

    res = await client.delete(f"/api/categories/{own}")
    assert res.status_code == 204
    assert fake_db.record("category", own) is None

    after = fake_db.record("expense", expense)
    assert after["category"] == "Uncategorized"
    assert after.get("category_id") is None

    res = await client.get(f"/api/expenses/{expense}")
    assert res.json()["data"]["categoryId"] is None


@pytest.mark.asyncio
async def test_cannot_delete_another_users_category(client, fake_db):
    foreign = fake_db.seed("category", {"name": "Boat", "user_id": OTHER_USER_ID})
    res = await client.delete(f"/api/categories/{foreign}")
    assert res.status_code == 404
    assert fake_db.record("category", foreign) is not None


@pytest.mark.asyncio
async def test_cascades_only_touch_the_owners_rows(client, fake_db):
    own = fake_db.seed("category", {"name": "Snacks", "user_id": USER_ID})
    # a stray row of another user pointing at the same category id
    stray_expense = fake_db.seed("expense", {"user_id": OTHER_USER_ID, "category_id": own, "category": "Snacks", "amount": 1, "currency": "USD", "date": "2025-01-01T00:00:00.000Z"})
    stray_budget = fake_db.seed("budget", {"user_id": OTHER_USER_ID, "category_id": own, "category": "Snacks", "amount": 5, "period_start": "2025-01-01T00:00:00.000Z"})

    assert (await client.patch(f"/api/categories/{own}", json={"name": "Treats"})).status_code == 200
    assert fake_db.record("expense", stray_expense)["category"] == "Snacks"
    assert fake_db.record("budget", stray_budget)["category"] == "Snacks"

    assert (await client.delete(f"/api/categories/{own}")).status_code == 204
    after = fake_db.record("expense", stray_expense)
    assert after["category_id"] == own
    assert after["category"] == "Snacks"
