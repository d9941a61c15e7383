"""Central role and capability definitions.

The role -> capability table is data, not branching: adding a capability means adding a
field to CapabilitySet and one value per role below. Never rename capability names
silently; the /auth/me payload and front-end route guards depend on them.
"""
from __future__ import annotations
from dataclasses import dataclass, fields, asdict
from types import MappingProxyType
from typing import Dict, List, Mapping

ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_STAFF = 'staff'
ROLE_TECHNICIAN = 'technician'
ALL_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, ROLE_TECHNICIAN)

LANGUAGES = ('en', 'th')


@dataclass(frozen=True)
class CapabilitySet:
    # User management
    can_view_all_users: bool
    can_manage_users: bool
    can_add_users: bool
    # Repair management
    can_view_all_repairs: bool
    can_view_own_repairs: bool
    can_create_repairs: bool
    can_update_repair_status: bool
    can_accept_jobs: bool
    can_cancel_jobs: bool
    can_assign_repairs: bool
    can_delete_repairs: bool
    # Notifications
    can_receive_new_job_notifications: bool
    # Dashboard
    can_view_dashboard: bool
    can_view_analytics: bool

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


CAPABILITY_NAMES: List[str] = [f.name for f in fields(CapabilitySet)]

_TABLE: Dict[str, CapabilitySet] = {
    ROLE_ADMIN: CapabilitySet(
        can_view_all_users=True,
        can_manage_users=True,
        can_add_users=True,
        can_view_all_repairs=True,
        can_view_own_repairs=True,
        can_create_repairs=True,
        can_update_repair_status=True,
        can_accept_jobs=True,
        can_cancel_jobs=True,
        can_assign_repairs=True,
        can_delete_repairs=True,
        can_receive_new_job_notifications=True,
        can_view_dashboard=True,
        can_view_analytics=True,
    ),
    # Manager: everything except creating brand-new accounts
    ROLE_MANAGER: CapabilitySet(
        can_view_all_users=True,
        can_manage_users=True,
        can_add_users=False,
        can_view_all_repairs=True,
        can_view_own_repairs=True,
        can_create_repairs=True,
        can_update_repair_status=True,
        can_accept_jobs=True,
        can_cancel_jobs=True,
        can_assign_repairs=True,
        can_delete_repairs=True,
        can_receive_new_job_notifications=True,
        can_view_dashboard=True,
        can_view_analytics=True,
    ),
    # Staff: file requests and follow their own tickets
    ROLE_STAFF: CapabilitySet(
        can_view_all_users=False,
        can_manage_users=False,
        can_add_users=False,
        can_view_all_repairs=False,
        can_view_own_repairs=True,
        can_create_repairs=True,
        can_update_repair_status=False,
        can_accept_jobs=False,
        can_cancel_jobs=False,
        can_assign_repairs=False,
        can_delete_repairs=False,
        can_receive_new_job_notifications=False,
        can_view_dashboard=True,
        can_view_analytics=False,
    ),
    # Technician: accept jobs and move them through the workflow
    ROLE_TECHNICIAN: CapabilitySet(
        can_view_all_users=False,
        can_manage_users=False,
        can_add_users=False,
        can_view_all_repairs=True,
        can_view_own_repairs=True,
        can_create_repairs=False,
        can_update_repair_status=True,
        can_accept_jobs=True,
        can_cancel_jobs=False,
        can_assign_repairs=False,
        can_delete_repairs=False,
        can_receive_new_job_notifications=True,
        can_view_dashboard=True,
        can_view_analytics=False,
    ),
}

ROLE_CAPABILITIES: Mapping[str, CapabilitySet] = MappingProxyType(_TABLE)
