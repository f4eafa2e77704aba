from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import AttendanceRecord, LeaveRequest, Student, StudentClassEnrollment


def _student_payload(code: str = "T11403", **overrides):
    payload = {
        "student_code": code,
        "name": "林小明",
        "birthday": "2016-03-14",
        "gender": "male",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_student_with_class(client: AsyncClient, admin_headers, make_class) -> None:
    school_class = await make_class(4, 2026, name="4A")
    response = await client.post(
        "/api/v1/students",
        json=_student_payload(class_id=school_class.id, enrollment_date="2026-09-01"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["enrollment_date"] == "2026-09-01"
    assert [(e["class_name"], e["school_year"], e["grade_id"]) for e in data["enrollments"]] == [("4A", 2026, 4)]


@pytest.mark.asyncio
async def test_duplicate_student_code(client: AsyncClient, admin_headers) -> None:
    first = await client.post("/api/v1/students", json=_student_payload(), headers=admin_headers)
    assert first.status_code == 201
    second = await client.post("/api/v1/students", json=_student_payload(name="Other"), headers=admin_headers)
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_list_students_filters_and_embeds(client: AsyncClient, admin_headers, make_class, make_student) -> None:
    school_class = await make_class(1, 2026)
    await make_student(school_class, name="Active One")
    await make_student(status="graduated", name="Alumna")

    active = await client.get("/api/v1/students?status=active", headers=admin_headers)
    assert [s["name"] for s in active.json()] == ["Active One"]
    assert active.json()[0]["enrollments"] is None

    embedded = await client.get("/api/v1/students?include_enrollments=true", headers=admin_headers)
    by_name = {s["name"]: s for s in embedded.json()}
    assert len(by_name["Active One"]["enrollments"]) == 1
    assert by_name["Alumna"]["enrollments"] == []


@pytest.mark.asyncio
async def test_second_enrollment_in_same_year_conflicts(
    client: AsyncClient, admin_headers, make_class, make_student
) -> None:
    first_class = await make_class(3, 2026, name="3A")
    other_class = await make_class(3, 2026, name="3B")
    next_year = await make_class(4, 2027, name="4A")
    student_id, other_class_id, next_year_id = (await make_student(first_class)).id, other_class.id, next_year.id

    # The rejected insert rolls the session back; only plain ids are used afterwards.
    conflict = await client.post(
        f"/api/v1/students/{student_id}/enrollments", json={"class_id": other_class_id}, headers=admin_headers
    )
    assert conflict.status_code == 409

    created = await client.post(
        f"/api/v1/students/{student_id}/enrollments", json={"class_id": next_year_id}, headers=admin_headers
    )
    assert created.status_code == 201
    assert created.json()["school_year"] == 2027

    listing = await client.get(f"/api/v1/students/{student_id}/enrollments", headers=admin_headers)
    assert [e["school_year"] for e in listing.json()] == [2027, 2026]


@pytest.mark.asyncio
async def test_move_and_remove_enrollment(client: AsyncClient, admin_headers, make_class, make_student) -> None:
    first_class = await make_class(3, 2026, name="3A")
    other_class = await make_class(3, 2026, name="3B")
    student = await make_student(first_class)
    enrollment_id = (await client.get(f"/api/v1/students/{student.id}/enrollments", headers=admin_headers)).json()[0]["id"]

    moved = await client.put(
        f"/api/v1/students/enrollments/{enrollment_id}", json={"class_id": other_class.id}, headers=admin_headers
    )
    assert moved.status_code == 200
    assert moved.json()["class_name"] == "3B"

    removed = await client.delete(f"/api/v1/students/enrollments/{enrollment_id}", headers=admin_headers)
    assert removed.status_code == 204
    again = await client.delete(f"/api/v1/students/enrollments/{enrollment_id}", headers=admin_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_delete_student_cascades(
    client: AsyncClient, db_session: AsyncSession, admin_headers, admin_user, make_class, make_student
) -> None:
    school_class = await make_class(5, 2026)
    student = await make_student(school_class)
    bystander = await make_student(school_class)
    leave = LeaveRequest(
        student_id=student.id,
        leave_type_id=1,
        start_date=date(2026, 10, 1),
        end_date=date(2026, 10, 2),
        status="approved",
    )
    db_session.add(leave)
    await db_session.flush()
    db_session.add_all(
        [
            AttendanceRecord(
                student_id=student.id,
                class_id=school_class.id,
                date=date(2026, 10, 1),
                status="on_leave",
                leave_request_id=leave.id,
                recorded_by_id=admin_user.id,
            ),
            AttendanceRecord(
                student_id=bystander.id,
                class_id=school_class.id,
                date=date(2026, 10, 1),
                status="present",
                recorded_by_id=admin_user.id,
            ),
        ]
    )
    await db_session.commit()

    response = await client.delete(f"/api/v1/students/{student.id}", headers=admin_headers)
    assert response.status_code == 204

    for model in (AttendanceRecord, LeaveRequest, StudentClassEnrollment):
        count = await db_session.execute(select(func.count(model.id)).where(model.student_id == student.id))
        assert count.scalar_one() == 0
    assert (await db_session.execute(select(func.count(Student.id)).where(Student.id == student.id))).scalar_one() == 0
    # Other students keep their rows.
    kept = await db_session.execute(
        select(func.count(AttendanceRecord.id)).where(AttendanceRecord.student_id == bystander.id)
    )
    assert kept.scalar_one() == 1


@pytest.mark.asyncio
async def test_update_student_status(client: AsyncClient, admin_headers, make_student) -> None:
    student = await make_student()
    response = await client.put(
        f"/api/v1/students/{student.id}",
        json={"status": "transferred_out", "departure_date": "2026-12-01", "departure_reason": "Moved"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "transferred_out"
    assert response.json()["departure_reason"] == "Moved"


@pytest.mark.asyncio
async def test_unknown_student(client: AsyncClient, admin_headers) -> None:
    assert (await client.get("/api/v1/students/404", headers=admin_headers)).status_code == 404
    assert (await client.delete("/api/v1/students/404", headers=admin_headers)).status_code == 404
