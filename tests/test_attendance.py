from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import AttendanceRecord, LeaveType


def _mark(class_id: int, on_date: str, *records):
    return {
        "class_id": class_id,
        "date": on_date,
        "records": [{"student_id": sid, "status": status} for sid, status in records],
    }


@pytest.mark.asyncio
async def test_teacher_needs_assignment(
    client: AsyncClient, admin_headers, teacher_headers, teacher_user, make_class, make_student
) -> None:
    school_class = await make_class(2, 2026)
    student = await make_student(school_class)
    payload = _mark(school_class.id, "2026-03-02", (student.id, "present"))

    denied = await client.post("/api/v1/attendance", json=payload, headers=teacher_headers)
    assert denied.status_code == 403

    await client.post(
        f"/api/v1/classes/{school_class.id}/teachers", json={"teacher_id": teacher_user.id}, headers=admin_headers
    )
    allowed = await client.post("/api/v1/attendance", json=payload, headers=teacher_headers)
    assert allowed.status_code == 200
    assert allowed.json()[0]["recorded_by_id"] == teacher_user.id


@pytest.mark.asyncio
async def test_marking_again_updates_the_same_record(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_class, make_student
) -> None:
    school_class = await make_class(2, 2026)
    student = await make_student(school_class, name="Chen Yu")

    first = await client.post(
        "/api/v1/attendance", json=_mark(school_class.id, "2026-03-02", (student.id, "absent")), headers=admin_headers
    )
    second = await client.post(
        "/api/v1/attendance", json=_mark(school_class.id, "2026-03-02", (student.id, "late")), headers=admin_headers
    )
    assert second.status_code == 200
    assert second.json()[0]["id"] == first.json()[0]["id"]
    assert second.json()[0]["status"] == "late"
    assert second.json()[0]["student_name"] == "Chen Yu"

    count = await db_session.execute(
        select(func.count()).select_from(AttendanceRecord).where(AttendanceRecord.student_id == student.id)
    )
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_on_leave_links_covering_leave(
    client: AsyncClient, db_session: AsyncSession, admin_headers, make_class, make_student
) -> None:
    school_class = await make_class(2, 2026)
    covered = await make_student(school_class)
    uncovered = await make_student(school_class)
    sick = (await db_session.execute(select(LeaveType.id).where(LeaveType.name == "病假"))).scalar_one()
    leave = await client.post(
        "/api/v1/leaves",
        json={"student_id": covered.id, "leave_type_id": sick, "start_date": "2026-03-02", "end_date": "2026-03-04"},
        headers=admin_headers,
    )
    leave_id = leave.json()["id"]

    response = await client.post(
        "/api/v1/attendance",
        json=_mark(school_class.id, "2026-03-03", (covered.id, "on_leave"), (uncovered.id, "on_leave")),
        headers=admin_headers,
    )
    assert response.status_code == 200
    links = {r["student_id"]: r["leave_request_id"] for r in response.json()}
    assert links == {covered.id: leave_id, uncovered.id: None}


@pytest.mark.asyncio
async def test_rejects_future_dates_and_unknowns(
    client: AsyncClient, admin_headers, make_class, make_student
) -> None:
    school_class = await make_class(2, 2026)
    student = await make_student(school_class)
    tomorrow = (date.today() + timedelta(days=1)).isoformat()

    future = await client.post(
        "/api/v1/attendance", json=_mark(school_class.id, tomorrow, (student.id, "present")), headers=admin_headers
    )
    assert future.status_code == 422

    unknown_class = await client.post(
        "/api/v1/attendance", json=_mark(9999, "2026-03-02", (student.id, "present")), headers=admin_headers
    )
    assert unknown_class.status_code == 404

    unknown_student = await client.post(
        "/api/v1/attendance", json=_mark(school_class.id, "2026-03-02", (9999, "present")), headers=admin_headers
    )
    assert unknown_student.status_code == 404

    empty = await client.post(
        "/api/v1/attendance", json={"class_id": school_class.id, "date": "2026-03-02", "records": []},
        headers=admin_headers,
    )
    assert empty.status_code == 422


@pytest.mark.asyncio
async def test_list_attendance_for_class_and_day(
    client: AsyncClient, admin_headers, teacher_headers, make_class, make_student
) -> None:
    school_class = await make_class(2, 2026)
    first = await make_student(school_class)
    second = await make_student(school_class)
    await client.post(
        "/api/v1/attendance",
        json=_mark(school_class.id, "2026-03-02", (first.id, "present"), (second.id, "leave_early")),
        headers=admin_headers,
    )
    await client.post(
        "/api/v1/attendance", json=_mark(school_class.id, "2026-03-03", (first.id, "absent")), headers=admin_headers
    )

    response = await client.get(
        "/api/v1/attendance", params={"classId": school_class.id, "date": "2026-03-02"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert [(r["student_id"], r["status"]) for r in response.json()] == [
        (first.id, "present"),
        (second.id, "leave_early"),
    ]

    unassigned = await client.get(
        "/api/v1/attendance", params={"classId": school_class.id, "date": "2026-03-02"}, headers=teacher_headers
    )
    assert unassigned.status_code == 403
