import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Holiday


async def _season(client: AsyncClient, headers, academic_year_id: int, **overrides):
    payload = {
        "academic_year_id": academic_year_id,
        "name": "下學期",
        "type": "semester",
        "start_date": "2027-02-10",
        "end_date": "2027-06-30",
    }
    payload.update(overrides)
    return await client.post("/api/v1/academic/seasons", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_season_crud(client: AsyncClient, admin_headers, make_year) -> None:
    ay = await make_year(2026, is_active=True)
    created = await _season(client, admin_headers, ay.id)
    assert created.status_code == 201
    season_id = created.json()["id"]

    listing = await client.get(f"/api/v1/academic/seasons?academic_year_id={ay.id}", headers=admin_headers)
    assert [s["id"] for s in listing.json()] == [season_id]

    updated = await client.put(
        f"/api/v1/academic/seasons/{season_id}", json={"name": "春季班"}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "春季班"
    assert updated.json()["start_date"] == "2027-02-10"


@pytest.mark.asyncio
async def test_season_for_unknown_year(client: AsyncClient, admin_headers) -> None:
    response = await _season(client, admin_headers, 12345)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_season_dates_validated(client: AsyncClient, admin_headers, make_year) -> None:
    ay = await make_year(2026, is_active=True)
    response = await _season(client, admin_headers, ay.id, end_date="2027-01-01")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_season_removes_holidays(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_year
) -> None:
    ay = await make_year(2026, is_active=True)
    season_id = (await _season(client, admin_headers, ay.id)).json()["id"]
    for day, description in (("2027-04-04", "兒童節"), ("2027-04-05", "清明節")):
        response = await client.post(
            "/api/v1/academic/holidays",
            json={"season_id": season_id, "date": day, "description": description},
            headers=admin_headers,
        )
        assert response.status_code == 201

    listing = await client.get(f"/api/v1/academic/holidays?season_id={season_id}", headers=admin_headers)
    assert [h["description"] for h in listing.json()] == ["兒童節", "清明節"]

    response = await client.delete(f"/api/v1/academic/seasons/{season_id}", headers=admin_headers)
    assert response.status_code == 204
    assert (await db_session.execute(select(func.count(Holiday.id)))).scalar_one() == 0

    missing = await client.delete(f"/api/v1/academic/seasons/{season_id}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_holiday_crud_and_not_found(client: AsyncClient, admin_headers, make_year) -> None:
    ay = await make_year(2026, is_active=True)
    season_id = (await _season(client, admin_headers, ay.id)).json()["id"]

    unknown_season = await client.post(
        "/api/v1/academic/holidays",
        json={"season_id": 999, "date": "2027-04-04", "description": "兒童節"},
        headers=admin_headers,
    )
    assert unknown_season.status_code == 404

    created = await client.post(
        "/api/v1/academic/holidays",
        json={"season_id": season_id, "date": "2027-05-01", "description": "Labour Day"},
        headers=admin_headers,
    )
    holiday_id = created.json()["id"]

    updated = await client.put(
        f"/api/v1/academic/holidays/{holiday_id}", json={"date": "2027-05-02"}, headers=admin_headers
    )
    assert updated.json()["date"] == "2027-05-02"
    assert updated.json()["description"] == "Labour Day"

    assert (await client.delete(f"/api/v1/academic/holidays/{holiday_id}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"/api/v1/academic/holidays/{holiday_id}", headers=admin_headers)).status_code == 404
    assert (await client.delete(f"/api/v1/academic/holidays/{holiday_id}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_teacher_can_read_but_not_write_calendar(client: AsyncClient, teacher_headers, make_year) -> None:
    ay = await make_year(2026, is_active=True)
    assert (await client.get("/api/v1/academic/seasons", headers=teacher_headers)).status_code == 200
    assert (await _season(client, teacher_headers, ay.id)).status_code == 403
