# algorithms/priority.py
"""
Emergency level ordering for blood requests.

The levels only order requests for display (critical first); nothing
escalates or re-notifies based on them.
"""

EMERGENCY_NORMAL = 'normal'
EMERGENCY_URGENT = 'urgent'
EMERGENCY_CRITICAL = 'critical'

EMERGENCY_LEVEL_CHOICES = [
    (EMERGENCY_NORMAL, 'Normal'),
    (EMERGENCY_URGENT, 'Urgent'),
    (EMERGENCY_CRITICAL, 'Critical'),
]

SEVERITY = {
    EMERGENCY_NORMAL: 0,
    EMERGENCY_URGENT: 1,
    EMERGENCY_CRITICAL: 2,
}


def severity_rank(emergency_level):
    """
    Convert an emergency level to a comparable rank (higher is more severe)
    Unknown levels rank as normal
    """
    return SEVERITY.get(emergency_level, SEVERITY[EMERGENCY_NORMAL])


def sort_by_severity(blood_requests):
    """
    Order requests most severe first, newest first within a level.
    Accepts either a queryset or a plain list; returns a list.
    """
    requests_list = list(blood_requests) if blood_requests is not None else []
    requests_list.sort(key=lambda r: r.created_at, reverse=True)
    requests_list.sort(key=lambda r: severity_rank(r.emergency_level), reverse=True)
    return requests_list
