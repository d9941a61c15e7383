from __future__ import annotations
"""Repair lifecycle controller.

Each operation checks the caller's capability set and the repair's current state,
applies the mutation to the Repair object and returns a TransitionResult holding the
repair plus the notifications the change should produce. Nothing here touches the
database session: the route layer persists the repair and hands the intents to
hoteldesk.services.notifications.dispatch.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence
from sqlalchemy import false
from hoteldesk.constants.permissions import CapabilitySet
from hoteldesk.config.pagination import normalize_pagination
from hoteldesk.errors import Forbidden, IllegalTransition
from hoteldesk.models.notification import Notification
from hoteldesk.models.repair import Repair
from hoteldesk.services.policy import assert_capabilities
from hoteldesk.utils.fsm import TransitionValidator
from hoteldesk.utils.validation import RepairInput, validate_description

REPAIR_FSM = TransitionValidator({
    Repair.STATUS_PENDING: {Repair.STATUS_IN_PROGRESS},
    Repair.STATUS_IN_PROGRESS: {Repair.STATUS_COMPLETED, Repair.STATUS_PENDING},
    Repair.STATUS_COMPLETED: set(),
}, allow_noop=True)


@dataclass
class NotificationIntent:
    """A notification that should be recorded, not yet delivered.

    Exactly one of user_id (a single recipient) or audience (a capability name whose
    holders all receive it) is set. related is the Repair/User the notification is
    about; its id is read lazily because new repairs have none until flushed.
    """
    type: str
    title: str
    description: str
    user_id: Optional[int] = None
    audience: Optional[str] = None
    related: Any = None
    exclude_user_ids: tuple = ()

    @property
    def related_id(self) -> Optional[int]:
        return getattr(self.related, 'id', None)


@dataclass
class TransitionResult:
    repair: Repair
    intents: List[NotificationIntent] = field(default_factory=list)
    changed: bool = True


def _label(repair: Repair) -> str:
    return f"room {repair.room} ({repair.category.replace('_', ' ')})"


def create(capabilities: CapabilitySet, requester_id: int, data: RepairInput) -> TransitionResult:
    assert_capabilities(capabilities, 'can_create_repairs')
    validate_description(data.description, data.urgency)
    repair = Repair(
        room=data.room,
        category=data.category,
        urgency=data.urgency,
        description=data.description,
        images=list(data.images),
        status=Repair.STATUS_PENDING,
        requester_id=requester_id,
        assignee_id=None,
    )
    intent = NotificationIntent(
        type=Notification.TYPE_NEW_REQUEST,
        title='New repair request',
        description=f"New {data.urgency} urgency request for {_label(repair)}",
        audience='can_receive_new_job_notifications',
        related=repair,
    )
    return TransitionResult(repair, [intent])


def update_status(capabilities: CapabilitySet, repair: Repair, new_status: str, caller_id: int) -> TransitionResult:
    assert_capabilities(capabilities, 'can_update_repair_status')
    REPAIR_FSM.assert_can_transition(repair.status, new_status)
    if repair.status == new_status:
        return TransitionResult(repair, [], changed=False)
    repair.status = new_status
    intents: List[NotificationIntent] = []
    if new_status == Repair.STATUS_COMPLETED:
        intents.append(NotificationIntent(
            type=Notification.TYPE_COMPLETED,
            title=f'Repair in room {repair.room} completed',
            description=f"Your repair request for {_label(repair)} has been completed",
            user_id=repair.requester_id,
            related=repair,
        ))
    elif new_status == Repair.STATUS_IN_PROGRESS:
        if repair.assignee_id is None:
            repair.assignee_id = caller_id
        intents.append(NotificationIntent(
            type=Notification.TYPE_STATUS_UPDATE,
            title='Repair in progress',
            description=f"Work has started on your repair request for {_label(repair)}",
            user_id=repair.requester_id,
            related=repair,
        ))
    else:
        repair.assignee_id = None
        intents.append(NotificationIntent(
            type=Notification.TYPE_STATUS_UPDATE,
            title='Repair back in queue',
            description=f"Your repair request for {_label(repair)} is pending again",
            user_id=repair.requester_id,
            related=repair,
        ))
    return TransitionResult(repair, intents)


def accept(capabilities: CapabilitySet, repair: Repair, caller_id: int) -> TransitionResult:
    assert_capabilities(capabilities, 'can_accept_jobs')
    if repair.status != Repair.STATUS_PENDING:
        raise IllegalTransition(f'Only pending repairs can be accepted (status is {repair.status})')
    repair.assignee_id = caller_id
    repair.status = Repair.STATUS_IN_PROGRESS
    intent = NotificationIntent(
        type=Notification.TYPE_ASSIGNED,
        title='Your repair request was accepted',
        description=f"A technician has accepted your repair request for {_label(repair)}",
        user_id=repair.requester_id,
        related=repair,
    )
    return TransitionResult(repair, [intent])


def assign(capabilities: CapabilitySet, repair: Repair, technician_id: int) -> TransitionResult:
    assert_capabilities(capabilities, 'can_assign_repairs')
    if repair.status != Repair.STATUS_PENDING:
        raise IllegalTransition(f'Only pending repairs can be assigned (status is {repair.status})')
    repair.assignee_id = technician_id
    repair.status = Repair.STATUS_IN_PROGRESS
    intents = [
        NotificationIntent(
            type=Notification.TYPE_ASSIGNED,
            title='Your repair request was assigned',
            description=f"A technician has been assigned to your repair request for {_label(repair)}",
            user_id=repair.requester_id,
            related=repair,
        ),
        NotificationIntent(
            type=Notification.TYPE_ASSIGNED,
            title='New job assigned to you',
            description=f"You have been assigned the repair for {_label(repair)}",
            user_id=technician_id,
            related=repair,
        ),
    ]
    return TransitionResult(repair, intents)


def cancel(capabilities: CapabilitySet, repair: Repair, caller_id: Optional[int] = None) -> TransitionResult:
    assert_capabilities(capabilities, 'can_cancel_jobs')
    if repair.status == Repair.STATUS_COMPLETED:
        raise IllegalTransition('Completed repairs cannot be cancelled')
    if repair.status == Repair.STATUS_PENDING:
        return TransitionResult(repair, [], changed=False)
    repair.assignee_id = None
    repair.status = Repair.STATUS_PENDING
    intents = [
        NotificationIntent(
            type=Notification.TYPE_STATUS_UPDATE,
            title='Repair job cancelled',
            description=f"The job for {_label(repair)} was cancelled and is waiting for a technician again",
            user_id=repair.requester_id,
            related=repair,
        ),
        NotificationIntent(
            type=Notification.TYPE_STATUS_UPDATE,
            title='Job available again',
            description=f"The job for {_label(repair)} was cancelled and can be accepted",
            audience='can_accept_jobs',
            related=repair,
            exclude_user_ids=tuple(u for u in (caller_id, repair.requester_id) if u is not None),
        ),
    ]
    return TransitionResult(repair, intents)


def can_view(capabilities: CapabilitySet, caller_id: int, repair: Repair) -> bool:
    if capabilities.can_view_all_repairs:
        return True
    return capabilities.can_view_own_repairs and repair.requester_id == caller_id


def _matches(repair: Repair, status, category, urgency, search) -> bool:
    if status and repair.status != status:
        return False
    if category and repair.category != category:
        return False
    if urgency and repair.urgency != urgency:
        return False
    if search:
        needle = search.lower()
        return needle in repair.room.lower() or needle in repair.description.lower()
    return True


def view_scope(capabilities: CapabilitySet, caller_id: int, repairs: Sequence[Repair], status: str = None,
               category: str = None, urgency: str = None, search: str = None, limit=None, offset=None) -> List[Repair]:
    """Repairs visible to the caller, filtered then paginated (default limit 50, max 100).

    No view capability yields an empty list, never an error.
    """
    if capabilities.can_view_all_repairs:
        visible = list(repairs)
    elif capabilities.can_view_own_repairs:
        visible = [r for r in repairs if r.requester_id == caller_id]
    else:
        return []
    limit, offset = normalize_pagination(limit, offset)
    visible = [r for r in visible if _matches(r, status, category, urgency, search)]
    return visible[offset:offset + limit]


def scope_query(capabilities: CapabilitySet, caller_id: int, query):
    """Restrict a Repair query to what view_scope would return (before filtering/pagination)."""
    if capabilities.can_view_all_repairs:
        return query
    if capabilities.can_view_own_repairs:
        return query.filter(Repair.requester_id == caller_id)
    return query.filter(false())


__all__ = ['REPAIR_FSM', 'NotificationIntent', 'TransitionResult', 'create', 'update_status', 'accept',
           'assign', 'cancel', 'can_view', 'view_scope', 'scope_query']
