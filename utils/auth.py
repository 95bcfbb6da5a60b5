# utils/auth.py
"""
Authentication Manager for Streamlit Apps

Version: 3.0.0
Features:
- Sign-in / sign-up / sign-out / password reset via the hosted auth service
- Role lookup from the user_roles relation (admin / user)
- Session refresh every SESSION_REFRESH_MINUTES, expiry warning
  SESSION_WARNING_MINUTES before the token runs out, shown on every
  protected page; session_tick drives both from a page timer
- Form validation before any call to the auth service
"""

import streamlit as st
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple, List, Any
from functools import wraps
import logging

from .config import config
from .supabase_client import get_supabase, reset_supabase
from .document_tracker.constants import ROLE_ADMIN, ROLE_USER
from .document_tracker.errors import AuthError
from .document_tracker.validators import FormValidator

logger = logging.getLogger(__name__)

SESSION_NOT_FOUND_MARKERS = ('session_not_found', 'session not found')


# ==================== HELPERS ====================

def is_session_not_found_error(error: Exception) -> bool:
    """Sign-out against an already-expired session reports this; treat as success."""
    message = str(error).lower()
    code = str(getattr(error, 'code', '') or '').lower()
    return any(marker in message or marker in code for marker in SESSION_NOT_FOUND_MARKERS)


def is_already_registered(sign_up_response: Any) -> bool:
    """Sign-up for an existing e-mail returns a user without identities."""
    user = getattr(sign_up_response, 'user', None)
    if user is None:
        return False
    identities = getattr(user, 'identities', None)
    return identities is not None and len(identities) == 0


def seconds_until_expiry(expires_at: Optional[int], now: Optional[datetime] = None) -> Optional[float]:
    """Seconds left on a session whose expires_at is a unix timestamp."""
    if not expires_at:
        return None
    now = now or datetime.now(timezone.utc)
    return float(expires_at) - now.timestamp()


class AuthManager:
    """Authentication manager for Streamlit apps"""

    SESSION_KEYS = [
        'authenticated', 'user_id', 'user_email', 'user_fullname', 'user_roles',
        'login_time', 'access_token', 'refresh_token', 'expires_at',
        'last_session_refresh', 'session_refresh_failed', 'session_warning_shown', 'debug_mode',
    ]

    def __init__(self, client=None, queries=None):
        self._client = client
        self._queries = queries
        self.validator = FormValidator()
        self.refresh_interval_seconds = 60 * config.get_app_setting("SESSION_REFRESH_MINUTES", 10)
        self.warning_seconds = 60 * config.get_app_setting("SESSION_WARNING_MINUTES", 5)

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase()
        return self._client

    @property
    def queries(self):
        if self._queries is None:
            from .document_tracker.queries import DocumentTrackerQueries
            self._queries = DocumentTrackerQueries()
        return self._queries

    # ==================== AUTHENTICATION ====================

    def sign_in(self, email: str, password: str) -> Tuple[bool, Dict]:
        """
        Sign in with e-mail and password

        Returns:
            Tuple of (success: bool, user_info: dict or error: dict)
        """
        errors = self.validator.validate_sign_in(email, password)
        if errors:
            return False, {"error": "Please correct the highlighted fields.", "errors": errors}

        email = email.strip()
        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            logger.error(f"❌ {e}")
            return False, {"error": str(e)}
        except Exception as e:
            logger.warning(f"Sign-in failed for {email}: {e}")
            return False, {"error": "Invalid email or password"}

        if response.user is None or response.session is None:
            logger.warning(f"Sign-in for {email} returned no session")
            return False, {"error": "Invalid email or password"}

        self.login(response.user, response.session)
        logger.info(f"User {email} signed in")
        return True, self.get_current_user()

    def sign_up(self, full_name: str, email: str, password: str,
                confirm_password: Optional[str] = None) -> Tuple[bool, Dict]:
        """Register a new account; the service sends a confirmation e-mail."""
        errors = self.validator.validate_sign_up(full_name, email, password, confirm_password)
        if errors:
            return False, {"error": "Please correct the highlighted fields.", "errors": errors}

        email = email.strip()
        try:
            response = self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name.strip()}},
            })
        except AuthError as e:
            logger.error(f"❌ {e}")
            return False, {"error": str(e)}
        except Exception as e:
            logger.warning(f"Sign-up failed for {email}: {e}")
            return False, {"error": f"Registration failed: {e}"}

        if is_already_registered(response):
            return False, {"error": "This email is already registered", "errors": {"email": "This email is already registered"}}

        logger.info(f"New registration: {email}")
        return True, {"message": "Registration successful! Please check your email for confirmation."}

    def send_password_reset(self, email: str) -> Tuple[bool, Dict]:
        email_error = self.validator.validate_email(email)
        if email_error:
            return False, {"error": email_error, "errors": {"email": email_error}}
        try:
            self.client.auth.reset_password_for_email(email.strip())
        except Exception as e:
            logger.warning(f"Password reset e-mail failed for {email}: {e}")
            return False, {"error": "Could not send the reset e-mail. Please try again."}
        logger.info(f"Password reset e-mail sent to {email}")
        return True, {"message": "Check your email for the password reset link."}

    def update_password(self, password: str, confirm_password: str) -> Tuple[bool, Dict]:
        errors = self.validator.validate_new_password(password, confirm_password)
        if errors:
            return False, {"error": "Please correct the highlighted fields.", "errors": errors}
        try:
            self.client.auth.update_user({"password": password})
        except Exception as e:
            logger.warning(f"Password update failed for {self.get_user_email()}: {e}")
            return False, {"error": f"Password update failed: {e}"}
        logger.info(f"Password updated for {self.get_user_email()}")
        return True, {"message": "Password updated."}

    # ==================== SESSION MANAGEMENT ====================

    def _store_session(self, session):
        st.session_state.access_token = session.access_token
        st.session_state.refresh_token = session.refresh_token
        st.session_state.expires_at = session.expires_at
        st.session_state.last_session_refresh = datetime.now(timezone.utc)
        st.session_state.session_refresh_failed = False

    def login(self, user, session):
        """Initialize user session after successful authentication"""
        metadata = getattr(user, 'user_metadata', None) or {}
        st.session_state.authenticated = True
        st.session_state.user_id = str(user.id)
        st.session_state.user_email = user.email
        st.session_state.user_fullname = metadata.get('full_name')
        st.session_state.login_time = datetime.now(timezone.utc)
        st.session_state.user_roles = self._load_roles(str(user.id))
        self._store_session(session)

        # Initialize app-specific session vars
        st.session_state.debug_mode = config.is_feature_enabled("DEBUG_MODE")

    def _load_roles(self, user_id: str) -> List[str]:
        roles = [ROLE_USER]
        if self.queries.has_role(user_id, ROLE_ADMIN):
            roles.append(ROLE_ADMIN)
        return roles

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if not st.session_state.get('authenticated'):
            return False

        remaining = seconds_until_expiry(st.session_state.get('expires_at'))
        if remaining is not None and remaining <= 0:
            logger.info(f"Session expired for user: {st.session_state.get('user_email')}")
            self.logout()
            return False
        return True

    def refresh_session_if_due(self, now: Optional[datetime] = None) -> bool:
        """Refresh tokens once the refresh interval has passed."""
        if not st.session_state.get('authenticated'):
            return False
        now = now or datetime.now(timezone.utc)
        last = st.session_state.get('last_session_refresh')
        if last and (now - last).total_seconds() < self.refresh_interval_seconds:
            return False
        return self.refresh_session()

    def refresh_session(self) -> bool:
        try:
            response = self.client.auth.refresh_session(st.session_state.get('refresh_token'))
        except Exception as e:
            logger.error(f"Failed to refresh session: {e}")
            st.session_state.session_refresh_failed = True
            return False
        if response.session is None:
            st.session_state.session_refresh_failed = True
            return False
        self._store_session(response.session)
        logger.debug(f"Session refreshed for {st.session_state.get('user_email')}")
        return True

    def session_expiry_warning(self, now: Optional[datetime] = None) -> Optional[str]:
        """Message to show when the session is about to expire, else None."""
        remaining = seconds_until_expiry(st.session_state.get('expires_at'), now)
        if remaining is None or remaining > self.warning_seconds:
            if st.session_state.get('session_refresh_failed'):
                return "We couldn't refresh your session. Click 'Stay signed in' to keep working."
            return None
        minutes = max(int(remaining // 60), 0)
        return f"Your session expires in {minutes} minute(s). Click 'Stay signed in' to keep working."

    def show_session_controls(self, now: Optional[datetime] = None):
        """Expiry warning with a 'Stay signed in' action."""
        warning = self.session_expiry_warning(now)
        st.session_state.session_warning_shown = warning is not None
        if not warning:
            return
        st.warning(f"⏳ {warning}")
        if st.button("Stay signed in", key="_stay_signed_in"):
            if self.refresh_session():
                st.session_state.session_warning_shown = False
                st.toast("Session refreshed.", icon="✅")
                st.rerun()
            else:
                st.error("Session refresh failed. Please sign in again.")

    def session_tick(self, now: Optional[datetime] = None) -> bool:
        """
        Timer hook for pages that stay open without reruns.

        Refreshes the session when due. Returns True when the page must
        rerun: the session expired, or the expiry warning should appear
        or disappear.
        """
        if not st.session_state.get('authenticated'):
            return False
        now = now or datetime.now(timezone.utc)
        self.refresh_session_if_due(now)

        remaining = seconds_until_expiry(st.session_state.get('expires_at'), now)
        if remaining is not None and remaining <= 0:
            return True
        should_show = self.session_expiry_warning(now) is not None
        return should_show != bool(st.session_state.get('session_warning_shown'))

    def logout(self):
        """Sign out remotely, then always clear the local session and cache"""
        email = st.session_state.get('user_email', 'Unknown')

        if st.session_state.get('authenticated'):
            try:
                self.client.auth.sign_out()
            except Exception as e:
                if not is_session_not_found_error(e):
                    logger.error(f"Error signing out {email}: {e}")

        for key in self.SESSION_KEYS:
            if key in st.session_state:
                del st.session_state[key]
        reset_supabase()
        self._client = None

        # Clear cache
        st.cache_data.clear()

        logger.info(f"User {email} logged out")

    # ==================== ACCESS CONTROL ====================

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        self.refresh_session_if_due()
        self.show_session_controls()
        return True

    def require_admin(self) -> bool:
        if not self.require_auth():
            return False
        if not self.is_admin():
            st.error("🚫 Access denied. Required role: admin")
            st.stop()
            return False
        return True

    def has_role(self, role: str) -> bool:
        """Check if current user has specific role"""
        return role in (st.session_state.get('user_roles') or [])

    def is_admin(self) -> bool:
        """Check if current user is admin"""
        return self.has_role(ROLE_ADMIN)

    # ==================== USER INFO HELPERS ====================

    def get_user_display_name(self) -> str:
        """Get user's display name for UI"""
        if st.session_state.get('user_fullname'):
            return st.session_state.user_fullname
        return st.session_state.get('user_email', 'User')

    def get_user_id(self) -> Optional[str]:
        """Get current user's ID"""
        return st.session_state.get('user_id')

    def get_user_email(self) -> Optional[str]:
        return st.session_state.get('user_email')

    def get_current_user(self) -> Dict:
        """Get all current user info as dictionary"""
        return {
            'id': st.session_state.get('user_id'),
            'email': st.session_state.get('user_email'),
            'fullname': st.session_state.get('user_fullname'),
            'roles': st.session_state.get('user_roles') or [],
            'login_time': st.session_state.get('login_time'),
        }


# ==================== DECORATORS ====================

def require_login(func):
    """Decorator to require login for a function"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        auth = AuthManager()
        if auth.require_auth():
            return func(*args, **kwargs)
    return wrapper


def require_admin(func):
    """Decorator to require the admin role"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        auth = AuthManager()
        if auth.require_admin():
            return func(*args, **kwargs)
    return wrapper


# ==================== MODULE EXPORTS ====================

__all__ = [
    'AuthManager',
    'require_login',
    'require_admin',
    'is_session_not_found_error',
    'is_already_registered',
]
