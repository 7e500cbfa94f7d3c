"""
Absence Validator

Pure decision function over a candidate absence, the employee's existing
absences and, for paid vacation, a snapshot of the leave balance.
No database access and no side effects: callers fetch the inputs and act on
the result.

Errors accumulate; a request is admitted only when no rule produced an error.
Warnings never block.
"""
from datetime import date
from typing import Any, Iterable, List, Optional

from app.core.config import settings
from app.models.absence import (
    ACTIVE_STATUSES,
    FAMILY_EVENT_DAYS,
    FAMILY_EVENT_LABELS,
    AbsenceStatus,
    AbsenceType,
    FamilyEventType,
)
from app.schemas.absence import (
    AbsenceCandidate,
    AbsenceValidationResult,
    InvalidResult,
    ValidationIssue,
    ValidResult,
)
from app.services.leave_rules import (
    calculate_fractionnement,
    calculate_remaining_days,
    count_business_days,
    count_business_days_outside_main_period,
    date_ranges_overlap,
    is_in_main_leave_period,
)


def validate_date_range(candidate: AbsenceCandidate) -> Optional[ValidationIssue]:
    if candidate.start_date > candidate.end_date:
        return ValidationIssue(
            code="date_range_invalid",
            message="The end date must be on or after the start date.",
            details={
                "start_date": candidate.start_date.isoformat(),
                "end_date": candidate.end_date.isoformat(),
            },
        )
    return None


def validate_overlap(candidate: AbsenceCandidate, existing_absences: Iterable[Any]) -> List[ValidationIssue]:
    """One issue per pending/approved absence sharing at least one day with the candidate."""
    issues = []
    for existing in existing_absences:
        if AbsenceStatus(existing.status) not in ACTIVE_STATUSES:
            continue
        if date_ranges_overlap(candidate.start_date, candidate.end_date, existing.start_date, existing.end_date):
            issues.append(ValidationIssue(
                code="overlap",
                message=(
                    f"An absence is already declared from {existing.start_date.isoformat()} "
                    f"to {existing.end_date.isoformat()}. Please choose different dates."
                ),
                details={
                    "absence_id": existing.id,
                    "start_date": existing.start_date.isoformat(),
                    "end_date": existing.end_date.isoformat(),
                    "status": AbsenceStatus(existing.status).value,
                },
            ))
    return issues


def validate_balance(candidate: AbsenceCandidate, leave_balance: Optional[Any]) -> Optional[ValidationIssue]:
    # Only paid vacation consumes the balance
    if candidate.absence_type != AbsenceType.VACATION:
        return None

    if leave_balance is None:
        return ValidationIssue(
            code="no_balance",
            message="No leave balance is available for this period yet. Try again or contact your employer.",
        )

    requested = count_business_days(candidate.start_date, candidate.end_date)
    remaining = calculate_remaining_days(leave_balance)
    if requested > remaining:
        return ValidationIssue(
            code="insufficient_balance",
            message=(
                f"Insufficient leave balance: {requested} day(s) requested, "
                f"{remaining:.1f} day(s) available."
            ),
            details={"remaining": remaining, "requested": requested},
        )
    return None


def validate_family_event(candidate: AbsenceCandidate) -> Optional[ValidationIssue]:
    if candidate.absence_type != AbsenceType.FAMILY_EVENT:
        return None

    if not candidate.family_event_type:
        return ValidationIssue(
            code="family_event_missing",
            message="Please select the type of family event.",
        )

    try:
        event = FamilyEventType(candidate.family_event_type)
    except ValueError:
        return ValidationIssue(
            code="family_event_unknown",
            message="Unrecognized family event type.",
            details={"family_event_type": candidate.family_event_type},
        )

    allowance = FAMILY_EVENT_DAYS[event]
    requested = count_business_days(candidate.start_date, candidate.end_date)
    if requested > allowance:
        return ValidationIssue(
            code="family_event_exceeds_allowance",
            message=(
                f"{FAMILY_EVENT_LABELS[event]}: at most {allowance} day(s) granted, "
                f"{requested} day(s) requested."
            ),
            details={"allowed": allowance, "requested": requested},
        )
    return None


def validate_sick_leave(candidate: AbsenceCandidate, today: date) -> Optional[ValidationIssue]:
    if candidate.absence_type != AbsenceType.SICK:
        return None

    # Sick leave is not planned ahead (except scheduled hospital stays, within the limit)
    max_advance = settings.leave.sick_leave_max_advance_days
    days_ahead = (candidate.start_date - today).days
    if days_ahead > max_advance:
        return ValidationIssue(
            code="sick_leave_too_far_ahead",
            message=f"Sick leave cannot be declared more than {max_advance} days in advance.",
            details={"days_ahead": days_ahead, "max_advance_days": max_advance},
        )
    return None


def check_main_leave_period(candidate: AbsenceCandidate) -> Optional[str]:
    """Warn when a main leave (12+ days) is not entirely taken between May and October."""
    if candidate.absence_type != AbsenceType.VACATION:
        return None

    days = count_business_days(candidate.start_date, candidate.end_date)
    if days < settings.leave.main_leave_min_days:
        return None
    if is_in_main_leave_period(candidate.start_date) and is_in_main_leave_period(candidate.end_date):
        return None

    outside = count_business_days_outside_main_period(candidate.start_date, candidate.end_date)
    message = "The main leave (12 days or more) should be taken between May and October."
    extra = calculate_fractionnement(outside)
    if extra:
        message += (
            f" {outside} days fall outside that period and may earn {extra} extra "
            f"split-leave day(s) (fractionnement)."
        )
    return message


def validate_absence_request(
    candidate: AbsenceCandidate,
    existing_absences: Iterable[Any],
    leave_balance: Optional[Any],
    today: Optional[date] = None,
) -> AbsenceValidationResult:
    """
    Judge a candidate absence.

    Args:
        candidate: The requested absence.
        existing_absences: The employee's absences (ORM rows or ExistingAbsence);
            only pending/approved ones are considered.
        leave_balance: Balance for the candidate's leave year (anything exposing
            acquired_days, taken_days and adjustment_days), or None.
        today: Reference date for time-relative rules, defaults to date.today().

    Returns:
        ValidResult or InvalidResult, tagged by `valid`.
    """
    today = today or date.today()
    errors: List[ValidationIssue] = []
    warnings: List[str] = []

    date_error = validate_date_range(candidate)
    if date_error:
        errors.append(date_error)

    errors.extend(validate_overlap(candidate, existing_absences))

    # Day-count rules are meaningless on an inverted range
    if date_error is None:
        for issue in (
            validate_balance(candidate, leave_balance),
            validate_family_event(candidate),
            validate_sick_leave(candidate, today),
        ):
            if issue:
                errors.append(issue)

        period_warning = check_main_leave_period(candidate)
        if period_warning:
            warnings.append(period_warning)

    if errors:
        return InvalidResult(errors=errors, warnings=warnings)
    return ValidResult(warnings=warnings)
