from enum import Enum


class UserRole(str, Enum):
    TEACHER = "teacher"
    GA_SPECIALIST = "GA_specialist"


class StudentStatus(str, Enum):
    active = "active"
    transferred_out = "transferred_out"
    graduated = "graduated"
    suspended = "suspended"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class AttendanceStatus(str, Enum):
    present = "present"
    absent = "absent"
    late = "late"
    leave_early = "leave_early"
    on_leave = "on_leave"


class LeaveStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class PendingLeaveAge(str, Enum):
    within_3_days = "within_3_days"
    over_3_days = "over_3_days"
