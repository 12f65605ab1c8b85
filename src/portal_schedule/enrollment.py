"""Enrollment service - enroll/unenroll transitions that drive materialization.

The enrollment row change and the schedule materialization are not a
transactional unit: enrolling succeeds even if materialization does not, and
the outcome reports both results separately.
"""

from portal_schedule.errors import NotFoundError, ValidationError
from portal_schedule.logging import get_logger
from portal_schedule.models import CourseCatalog, EnrollmentOutcome, UnenrollmentOutcome
from portal_schedule.reconciler import MaterializationReconciler
from portal_schedule.store.base import ScheduleStore

log = get_logger(__name__)

SCHEDULE_NOT_UPDATED = "schedule not fully updated"


def validate_course_id(course_id: object) -> str:
    """Return the course id as the canonical string of a positive integer.

    Accepts ints and numeric strings (surrounding whitespace is ignored), so
    `12`, `"12"` and `" 12 "` all become `"12"`.

    Raises:
        ValidationError: If the id is missing, not an integer, or not positive.
    """
    if course_id is None or isinstance(course_id, bool):
        raise ValidationError("Invalid course ID")
    try:
        value = int(str(course_id).strip())
    except ValueError:
        raise ValidationError(f"Invalid course ID: {course_id!r}") from None
    if value <= 0:
        raise ValidationError(f"Invalid course ID: {course_id!r}")
    return str(value)


class EnrollmentService:
    """Enroll and unenroll students, keeping materialized events in step."""

    def __init__(
        self, store: ScheduleStore, reconciler: MaterializationReconciler | None = None
    ) -> None:
        self.store = store
        self.reconciler = reconciler or MaterializationReconciler(store)

    def enroll(self, user_id: str, course_id: object) -> EnrollmentOutcome:
        """Enroll *user_id* in the course, then materialize its schedule.

        Raises:
            ValidationError: If the course id is not a positive integer.
            NotFoundError: If the course does not exist.
            ConflictError: If the user is already enrolled (nothing is materialized).
            StoreError: If the enrollment row itself could not be written.
        """
        course_id = validate_course_id(course_id)
        course = self.store.get_course(course_id)
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")

        self.store.insert_enrollment(user_id, course.id)
        log.info("enrolled", user_id=user_id, course_id=course.id)

        result = self.reconciler.on_enroll(user_id, course)
        if result.scheduled:
            message = "Successfully enrolled!"
        else:
            message = f"Enrolled, but {SCHEDULE_NOT_UPDATED}."
        return EnrollmentOutcome(
            user_id=user_id,
            course_id=course.id,
            enrolled=True,
            schedule_updated=result.scheduled,
            materialization=result,
            message=message,
        )

    def unenroll(self, user_id: str, course_id: object) -> UnenrollmentOutcome:
        """Remove the enrollment, then clean up materialized rows (best effort).

        Raises:
            ValidationError: If the course id is not a positive integer.
            StoreError: If the enrollment row could not be deleted.
        """
        course_id = validate_course_id(course_id)
        self.store.delete_enrollment(user_id, course_id)
        log.info("unenrolled", user_id=user_id, course_id=course_id)

        result = self.reconciler.on_unenroll(user_id, course_id)
        if result.scheduled:
            message = "Successfully unenrolled!"
        else:
            message = f"Unenrolled, but {SCHEDULE_NOT_UPDATED}."
        return UnenrollmentOutcome(
            user_id=user_id,
            course_id=course_id,
            unenrolled=True,
            schedule_updated=result.scheduled,
            materialization=result,
            message=message,
        )

    def catalog(self, user_id: str) -> CourseCatalog:
        """Split the catalog into the user's enrolled and available courses."""
        enrolled = self.store.get_enrolled_courses(user_id)
        enrolled_ids = {c.id for c in enrolled}
        courses = self.store.list_courses()
        return CourseCatalog(
            enrolled=[c for c in courses if c.id in enrolled_ids],
            available=[c for c in courses if c.id not in enrolled_ids],
        )
