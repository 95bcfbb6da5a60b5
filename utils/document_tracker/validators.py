# utils/document_tracker/validators.py
"""
Form validation for auth, settings and customer edits.

Every check runs before any network call; methods return a
{field: message} dict (empty if valid). ensure_valid() turns a non-empty
result into ValidationError.

VERSION: 1.0.0
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import MIN_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from .errors import ValidationError, WebhookURLNotAllowedError
from .webhook import check_url_syntax

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
FULL_NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
SPECIAL_CHAR_RE = re.compile(r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>/?]')
CUSTOMER_ID_RE = re.compile(r'^[A-Za-z0-9_\-]+$')


@dataclass
class PasswordStrength:
    score: int
    feedback: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.feedback

    @property
    def label(self) -> str:
        if self.score == 0:
            return 'Very Weak'
        if self.score <= 2:
            return 'Weak'
        if self.score == 3:
            return 'Fair'
        if self.score == 4:
            return 'Strong'
        return 'Very Strong'


def password_strength(password: str) -> PasswordStrength:
    """Score 0-5, one point per satisfied rule."""
    password = password or ''
    checks: List[Tuple[bool, str]] = [
        (len(password) >= 8, 'Password must be at least 8 characters long'),
        (re.search(r'[A-Z]', password) is not None, 'Password must contain at least one uppercase letter'),
        (re.search(r'[a-z]', password) is not None, 'Password must contain at least one lowercase letter'),
        (re.search(r'\d', password) is not None, 'Password must contain at least one number'),
        (SPECIAL_CHAR_RE.search(password) is not None, 'Password must contain at least one special character'),
    ]
    feedback = [message for ok, message in checks if not ok]
    return PasswordStrength(score=min(5, len(checks) - len(feedback)), feedback=feedback)


def ensure_valid(errors: Dict[str, str]):
    if errors:
        raise ValidationError(errors)


class FormValidator:
    """Validators for the app's forms."""

    MAX_EMAIL_LENGTH = 255
    MAX_FULL_NAME_LENGTH = 100
    MAX_CUSTOMER_NAME_LENGTH = 255

    # ==================== Auth ====================

    def validate_email(self, email: str) -> Optional[str]:
        email = (email or '').strip()
        if not email:
            return 'Email is required'
        if len(email) > self.MAX_EMAIL_LENGTH:
            return f'Email must be less than {self.MAX_EMAIL_LENGTH} characters'
        if not EMAIL_RE.match(email):
            return 'Invalid email format'
        return None

    def validate_sign_in(self, email: str, password: str) -> Dict[str, str]:
        errors = {}
        email_error = self.validate_email(email)
        if email_error:
            errors['email'] = email_error
        if not password:
            errors['password'] = 'Password is required'
        return errors

    def validate_sign_up(self, full_name: str, email: str, password: str,
                         confirm_password: Optional[str] = None) -> Dict[str, str]:
        errors = {}

        name = (full_name or '').strip()
        if not name:
            errors['full_name'] = 'Full name is required'
        elif len(name) > self.MAX_FULL_NAME_LENGTH:
            errors['full_name'] = f'Full name must be less than {self.MAX_FULL_NAME_LENGTH} characters'
        elif not FULL_NAME_RE.match(name):
            errors['full_name'] = 'Full name can only contain letters, spaces, hyphens, and apostrophes'

        email_error = self.validate_email(email)
        if email_error:
            errors['email'] = email_error

        errors.update(self.validate_new_password(password, confirm_password))
        return errors

    def validate_new_password(self, password: str, confirm_password: Optional[str] = None) -> Dict[str, str]:
        """Strength rules plus, when given, confirmation match."""
        errors = {}
        strength = password_strength(password)
        if not strength.is_valid:
            errors['password'] = strength.feedback[0]
        if confirm_password is not None and password != confirm_password:
            errors['confirm_password'] = 'Passwords do not match'
        return errors

    # ==================== Settings ====================

    @staticmethod
    def _parse_optional_int(value: Any) -> Tuple[Optional[int], bool]:
        """(value, ok). Blank means None."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return None, True
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            return None, False
        return number, True

    def validate_settings(self, values: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        Validate and normalize the settings form.

        Returns:
            (cleaned_values, errors); history_limit is clamped to its range
        """
        cleaned: Dict[str, Any] = {}
        errors: Dict[str, str] = {}

        for key in ('target_all', 'target_invoice', 'target_top'):
            if key not in values:
                continue
            number, ok = self._parse_optional_int(values[key])
            if not ok:
                errors[key] = 'Target must be a whole number'
            elif number is not None and number < 0:
                errors[key] = 'Target cannot be negative'
            else:
                cleaned[key] = number

        if 'history_limit' in values:
            number, ok = self._parse_optional_int(values['history_limit'])
            if not ok:
                errors['history_limit'] = 'History window must be a whole number'
            elif number is not None:
                cleaned['history_limit'] = max(MIN_HISTORY_LIMIT, min(MAX_HISTORY_LIMIT, number))
            else:
                cleaned['history_limit'] = None

        if 'topx' in values:
            number, ok = self._parse_optional_int(values['topx'])
            if not ok or (number is not None and number <= 0):
                errors['topx'] = 'Top-N must be a positive whole number'
            else:
                cleaned['topx'] = number

        if 'automation_url' in values:
            url = (values['automation_url'] or '').strip()
            try:
                if url:
                    check_url_syntax(url)
                cleaned['automation_url'] = url or None
            except WebhookURLNotAllowedError as e:
                errors['automation_url'] = str(e)

        return cleaned, errors

    # ==================== Customers ====================

    def validate_customer(self, values: Dict[str, Any]) -> Dict[str, str]:
        errors = {}
        if 'id' in values:
            customer_id = str(values.get('id') or '').strip()
            if not customer_id:
                errors['id'] = 'Customer number is required'
            elif not CUSTOMER_ID_RE.match(customer_id):
                errors['id'] = 'Customer number may only contain letters, digits, - and _'
        if 'customer_name' in values:
            name = (values.get('customer_name') or '').strip()
            if not name:
                errors['customer_name'] = 'Customer name is required'
            elif len(name) > self.MAX_CUSTOMER_NAME_LENGTH:
                errors['customer_name'] = f'Customer name must be less than {self.MAX_CUSTOMER_NAME_LENGTH} characters'
        mail = (values.get('administration_mail') or '').strip()
        if mail:
            mail_error = self.validate_email(mail)
            if mail_error:
                errors['administration_mail'] = mail_error
        return errors
