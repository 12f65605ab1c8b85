"""Course schedule projection and event reconciliation for the student portal.

Projects weekly course meetings into calendar events, keeps a short rolling
window of them materialized in the portal database as enrollments change, and
merges them with the student's own events for calendar and dashboard views.
"""

from portal_schedule.enrollment import EnrollmentService
from portal_schedule.events import EventGateway
from portal_schedule.models import (
    Course,
    MergedEvent,
    PersistedEvent,
    ProjectedOccurrence,
    WeekMask,
)
from portal_schedule.projector import project, project_day
from portal_schedule.query import ScheduleQuery
from portal_schedule.reconciler import MaterializationReconciler

__all__ = [
    "Course",
    "WeekMask",
    "PersistedEvent",
    "ProjectedOccurrence",
    "MergedEvent",
    "project",
    "project_day",
    "MaterializationReconciler",
    "EnrollmentService",
    "ScheduleQuery",
    "EventGateway",
]
