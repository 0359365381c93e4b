# Global Constants

class Roles:
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"
    CLIENT = "client"

    ALL = (ADMIN, HR, EMPLOYEE, CLIENT)


class Categories:
    ANNOUNCEMENT = "announcement"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_PENDING = "leave_pending"
    EXPENSE_APPROVED = "expense_approved"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_PENDING = "expense_pending"
    ATTENDANCE_EDIT_APPROVED = "attendance_edit_approved"
    ATTENDANCE_EDIT_REJECTED = "attendance_edit_rejected"
    ATTENDANCE_EDIT_PENDING = "attendance_edit_pending"
    CHAT = "chat"


class DecisionStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    RESOLVED = (APPROVED, REJECTED)


class SourceCaps:
    """Maximum items each source contributes to one aggregation pass."""
    ANNOUNCEMENTS = 5
    CHAT_UNREAD = 1
    LEAVE_DECISIONS = 5
    EXPENSE_DECISIONS = 5
    ATTENDANCE_EDIT_DECISIONS = 5
    PENDING_LEAVES = 3
    PENDING_ATTENDANCE_EDITS = 3


class FetchLimits:
    """Page sizes requested from the HR backend."""
    ANNOUNCEMENTS = 10
    LEAVES = 20
    EXPENSES = 20
    PENDING_LEAVES = 10


CHAT_UNREAD_ID = "chat_unread_bulk"

READ_STATE_KEY_PREFIX = "hrms_read_notifications_"


# Role-scoped navigation targets. "default" covers employee and unknown roles.
NAVIGATION_TARGETS = {
    "announcements": {
        Roles.ADMIN: "/admin/announcements",
        Roles.HR: "/hr/announcements",
        Roles.CLIENT: "/client/chat",
        "default": "/employee/announcements",
    },
    "chat": {
        Roles.ADMIN: "/admin/chat",
        Roles.HR: "/hr/chat",
        Roles.CLIENT: "/client/chat",
        "default": "/employee/chat",
    },
    "leave": {
        Roles.HR: "/hr/leaves",
        Roles.ADMIN: "/admin/leaves",
        "default": "/employee/leave",
    },
    "expense": {
        Roles.HR: "/hr/expenses",
        Roles.ADMIN: "/admin/expenses",
        "default": "/employee/expenses",
    },
    "attendance": {
        Roles.HR: "/hr/attendance-requests",
        "default": "/employee/attendance",
    },
}


def navigation_target(area: str, role: str) -> str:
    targets = NAVIGATION_TARGETS[area]
    return targets.get(role, targets["default"])
