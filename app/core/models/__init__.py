from app.auth.models import User  # noqa: F401  (users table must be mapped for FK/relationship resolution)
from app.core.models.academic_year import AcademicYear
from app.core.models.season import Season
from app.core.models.holiday import Holiday
from app.core.models.grade import Grade
from app.core.models.class_model import SchoolClass
from app.core.models.student import Student
from app.core.models.student_class_enrollment import StudentClassEnrollment
from app.core.models.teacher_class_assignment import TeacherClassAssignment
from app.core.models.leave_type import LeaveType
from app.core.models.leave_request import LeaveRequest
from app.core.models.attendance_record import AttendanceRecord

__all__ = [
    "AcademicYear",
    "AttendanceRecord",
    "Grade",
    "Holiday",
    "LeaveRequest",
    "LeaveType",
    "SchoolClass",
    "Season",
    "Student",
    "StudentClassEnrollment",
    "TeacherClassAssignment",
]
