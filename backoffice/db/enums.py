"""Enum definitions for application constants."""

from enum import Enum


class EmployeeRole(str, Enum):
    """
    Employee roles with increasing privilege levels.

    - STAFF: day-to-day record keeping
    - MANAGER: master data (tags, categories, business entities, industries)
    - ADMIN: employee accounts and password resets
    """
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


ROLES_CAN_MANAGE_MASTERS = {EmployeeRole.ADMIN, EmployeeRole.MANAGER}
ROLES_CAN_ADMINISTER = {EmployeeRole.ADMIN}


class ProjectCategory(str, Enum):
    """
    Business categories. The first letter doubles as the project code prefix.
    """
    SURVEY = "A_Survey"
    BOUNDARY = "B_Boundary"
    REGISTRATION = "C_Registration"
    INHERITANCE = "D_Inheritance"
    CORPORATE = "E_Corporate"
    DRONE = "F_Drone"
    FARMLAND = "N_Farmland"

    @property
    def prefix(self) -> str:
        return self.value[0]

    @property
    def label(self) -> str:
        return PROJECT_CATEGORY_LABELS[self]

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_

    @classmethod
    def parse(cls, raw: str) -> "ProjectCategory | None":
        """Resolve a value ("A_Survey"), a label ("A:一般測量") or a prefix letter ("A")."""
        raw = (raw or "").strip()
        if not raw:
            return None
        if cls.has_value(raw):
            return cls(raw)
        for category in cls:
            if raw == category.label or raw.upper() == category.prefix:
                return category
        return None


PROJECT_CATEGORY_LABELS = {
    ProjectCategory.SURVEY: "A:一般測量",
    ProjectCategory.BOUNDARY: "B:境界確定測量",
    ProjectCategory.REGISTRATION: "C:登記",
    ProjectCategory.INHERITANCE: "D:相続",
    ProjectCategory.CORPORATE: "E:法人",
    ProjectCategory.DRONE: "F:ドローン",
    ProjectCategory.FARMLAND: "N:農地",
}


class ProjectStatus(str, Enum):
    """Project lifecycle: 受注 → 着手 → 進行中 → 完了 → 請求済."""
    RECEIVED = "受注"
    STARTED = "着手"
    IN_PROGRESS = "進行中"
    COMPLETED = "完了"
    INVOICED = "請求済"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


ACTIVE_PROJECT_STATUSES = {
    ProjectStatus.RECEIVED,
    ProjectStatus.STARTED,
    ProjectStatus.IN_PROGRESS,
}


class TaskStatus(str, Enum):
    """Task progress. Cycling wraps from 完了 back to 未着手."""
    NOT_STARTED = "未着手"
    IN_PROGRESS = "進行中"
    DONE = "完了"

    def next(self) -> "TaskStatus":
        order = list(TaskStatus)
        return order[(order.index(self) + 1) % len(order)]


class AttendanceStatus(str, Enum):
    WORK = "Work"


class EventLabel(str, Enum):
    """Legacy fixed calendar labels, kept alongside the category master."""
    DESK_WORK = "内業"
    VISITOR = "来客"
    OUTING = "外出"
    SITE = "現場"
    BUSINESS_TRIP = "出張"
    STUDY = "勉強"
    REGISTRATION = "登記"
    MAINTENANCE = "整備"
    HOLIDAY = "休み"
    OTHER = "その他"


class RecipientType(str, Enum):
    """Who a generated document is addressed to."""
    ACCOUNT = "account"
    CONTACT = "contact"


class PostalCodeConfidence(str, Enum):
    HIGH = "high"
    LOW = "low"
