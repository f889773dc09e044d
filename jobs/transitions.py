"""
Job lifecycle rules as pure functions.

Every guard reads a JobFacts snapshot (plus the caller's context for values
supplied with the request, eg. GPS at start) and returns None when it holds
or a short description of what is missing. Nothing here touches the
database, the state machine collects the facts and applies the result.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from jobs.models import Job
from requisitions.models import Requisition

Status = Job.Status

# Requisition statuses that count as materials being approved
APPROVED_REQUISITION_STATUSES = (
    Requisition.Status.APPROVED,
    Requisition.Status.PARTIALLY_ISSUED,
    Requisition.Status.FULLY_ISSUED,
)

START_LOCATION_GUARD = "start location (GPS) not captured"

TERMINAL_STATES = (Status.VERIFIED, Status.CANCELLED)


@dataclass(frozen=True)
class JobFacts:
    job_type: str
    technician_count: int = 0
    requisition_statuses: Tuple[str, ...] = ()
    outstanding_required_items: Tuple[str, ...] = ()
    vehicle_required: bool = False
    vehicle_present: bool = False
    pre_inspection_missing: Tuple[str, ...] = ()
    post_inspection_missing: Tuple[str, ...] = ()
    installation_present: bool = False
    completion_notes: bool = False
    customer_acknowledged: bool = False
    scheduled_date: Optional[date] = None
    today: Optional[date] = None


Guard = Callable[[JobFacts, Dict[str, Any]], Optional[str]]


def technicians_assigned(facts, context):
    if facts.technician_count < 1:
        return "no technician assigned"
    return None


def requisition_raised(facts, context):
    if not facts.requisition_statuses:
        return "no requisition raised for the job"
    return None


def requisitions_ready(facts, context):
    if not facts.requisition_statuses:
        return "no requisition raised for the job"
    waiting = [s for s in facts.requisition_statuses if s not in APPROVED_REQUISITION_STATUSES]
    if waiting:
        return f"{len(waiting)} requisition(s) still awaiting approval"
    if facts.outstanding_required_items:
        return "items required to start not fully issued: " + ", ".join(facts.outstanding_required_items)
    return None


def vehicle_attached(facts, context):
    if facts.vehicle_required and not facts.vehicle_present:
        return f"a vehicle is required for {facts.job_type} jobs"
    return None


def pre_inspection_complete(facts, context):
    if facts.pre_inspection_missing:
        return "pre-installation inspection incomplete: " + ", ".join(facts.pre_inspection_missing)
    return None


def start_location_captured(facts, context):
    if not str(context.get('gps_coordinates') or '').strip():
        return START_LOCATION_GUARD
    return None


def scheduled_date_reached(facts, context):
    if facts.scheduled_date and facts.today and facts.scheduled_date > facts.today:
        return f"job is scheduled for {facts.scheduled_date.isoformat()}"
    return None


def installation_saved(facts, context):
    if not facts.installation_present:
        return "installation data not saved"
    return None


def post_inspection_complete(facts, context):
    if facts.post_inspection_missing:
        return "post-installation inspection incomplete: " + ", ".join(facts.post_inspection_missing)
    return None


def completion_checklist(facts) -> List[Tuple[str, bool]]:
    """Named completion prerequisites with their current truth values, in check order"""
    return [
        ('vehicle_present', not facts.vehicle_required or facts.vehicle_present),
        ('pre_inspection_complete', not facts.pre_inspection_missing),
        ('installation_data_present', facts.installation_present),
        ('post_inspection_complete', not facts.post_inspection_missing),
        ('completion_notes', facts.completion_notes),
        ('customer_acknowledged', facts.customer_acknowledged),
    ]


def completion_prerequisites(facts, context):
    unmet = [name for name, satisfied in completion_checklist(facts) if not satisfied]
    if unmet:
        return "completion prerequisites not met: " + ", ".join(unmet)
    return None


def cancellation_reason_given(facts, context):
    if not str(context.get('reason') or '').strip():
        return "a cancellation reason is required"
    return None


TRANSITIONS: Dict[str, Dict[str, Tuple[Guard, ...]]] = {
    Status.PENDING: {
        Status.ASSIGNED: (technicians_assigned,),
    },
    Status.ASSIGNED: {
        Status.REQUISITION_PENDING: (technicians_assigned, requisition_raised),
        Status.PRE_INSPECTION_PENDING: (technicians_assigned, vehicle_attached),
    },
    Status.REQUISITION_PENDING: {
        Status.REQUISITION_APPROVED: (requisitions_ready,),
    },
    Status.REQUISITION_APPROVED: {
        Status.PRE_INSPECTION_PENDING: (vehicle_attached,),
    },
    Status.PRE_INSPECTION_PENDING: {
        Status.PRE_INSPECTION_APPROVED: (pre_inspection_complete,),
    },
    Status.PRE_INSPECTION_APPROVED: {
        Status.IN_PROGRESS: (start_location_captured, scheduled_date_reached),
    },
    Status.IN_PROGRESS: {
        Status.POST_INSPECTION_PENDING: (installation_saved,),
    },
    Status.POST_INSPECTION_PENDING: {
        Status.COMPLETED: (post_inspection_complete, completion_prerequisites),
    },
    Status.COMPLETED: {
        Status.VERIFIED: (),
    },
}


def next_states(current) -> List[str]:
    if current in TERMINAL_STATES:
        return []
    return list(TRANSITIONS.get(current, {}).keys()) + [Status.CANCELLED]


def evaluate_transition(current, target, facts: JobFacts, context: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    The unmet condition blocking current -> target, or None when the move is
    legal. Asking for the current state is always legal (retry).
    """
    context = context or {}
    if current == target:
        return None
    if current in TERMINAL_STATES:
        return f"{current} is a terminal state"
    if target == Status.CANCELLED:
        return cancellation_reason_given(facts, context)

    guards = TRANSITIONS.get(current, {}).get(target)
    if guards is None:
        return f"no transition from {current} to {target}"
    for guard in guards:
        unmet = guard(facts, context)
        if unmet:
            return unmet
    return None
