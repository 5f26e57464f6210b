"""SQLAlchemy ORM models, re-exported so `Base.metadata` sees every table."""

from backoffice.db.models.attendance import AttendanceDaily, WorkLog
from backoffice.db.models.calendar import (
    CalendarEvent,
    CalendarEventParticipant,
    EventCategory,
)
from backoffice.db.models.customers import Account, Branch, Contact, Industry
from backoffice.db.models.documents import DocumentTemplate
from backoffice.db.models.employees import Employee
from backoffice.db.models.invoices import BusinessEntity, Invoice
from backoffice.db.models.projects import (
    Comment,
    CommentAcknowledgement,
    Project,
    ProjectLink,
    ProjectStakeholder,
    StakeholderTag,
)
from backoffice.db.models.tasks import Task, TaskTemplateItem, TaskTemplateSet

__all__ = [
    "Account",
    "AttendanceDaily",
    "Branch",
    "BusinessEntity",
    "CalendarEvent",
    "CalendarEventParticipant",
    "Comment",
    "CommentAcknowledgement",
    "Contact",
    "DocumentTemplate",
    "Employee",
    "EventCategory",
    "Industry",
    "Invoice",
    "Project",
    "ProjectLink",
    "ProjectStakeholder",
    "StakeholderTag",
    "Task",
    "TaskTemplateItem",
    "TaskTemplateSet",
    "WorkLog",
]
