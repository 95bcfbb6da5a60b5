# utils/document_tracker/access_control.py
"""
Access Control for the Customer Document Tracker

Roles come from the user_roles relation (admin / user). Pages check
these before rendering; the gateway repeats the admin check for
role management.

VERSION: 1.0.0
"""

import logging
from typing import Iterable

from .constants import ROLE_ADMIN, ROLE_USER

logger = logging.getLogger(__name__)


class AccessControl:
    """
    Feature access for the signed-in user.

    Usage:
        access = AccessControl(roles)
        if access.can_manage_customers():
            ...
    """

    def __init__(self, roles: Iterable[str] = ()):
        self.roles = frozenset(roles)

    @classmethod
    def for_admin_flag(cls, is_admin: bool) -> 'AccessControl':
        return cls([ROLE_ADMIN] if is_admin else [ROLE_USER])

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    # =========================================================================
    # PAGE-LEVEL ACCESS
    # =========================================================================

    def can_view_dashboard(self) -> bool:
        """Every signed-in user sees the dashboard."""
        return True

    def can_manage_customers(self) -> bool:
        return self.is_admin

    def can_edit_settings(self) -> bool:
        return self.is_admin

    def can_manage_users(self) -> bool:
        return self.is_admin

    # =========================================================================
    # FEATURE ACCESS
    # =========================================================================

    def can_trigger_automation(self) -> bool:
        return self.is_admin

    def can_mark_updated(self) -> bool:
        """Any signed-in user may stamp a customer as handled."""
        return True

    # =========================================================================
    # MESSAGES
    # =========================================================================

    def get_denied_message(self, feature: str) -> str:
        return f"⚠️ Access Denied. {feature} requires the administrator role."

    def __repr__(self) -> str:
        return f"AccessControl(roles={sorted(self.roles)})"
