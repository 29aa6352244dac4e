"""
Credential strength policy and field validation.

Everything in this module is pure: no collaborator is ever called from here.
The scoring functions are used on every keystroke to drive a strength meter,
and the forms are used by the controllers to build per-field error maps
before anything is sent to a collaborator.
"""

from typing import Any, Dict, List, Optional
import re

from werkzeug.datastructures import MultiDict
from wtforms import Form, StringField, PasswordField, HiddenField
from wtforms.validators import DataRequired, EqualTo, ValidationError

from . import exceptions
from .domain import StrengthScore

MIN_LENGTH = 8
ACCEPTANCE_THRESHOLD = 3
"""Minimum score (Good) required to set a new credential."""

EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')

_UPPER = re.compile(r'[A-Z]', re.ASCII)
_LOWER = re.compile(r'[a-z]', re.ASCII)
_DIGIT = re.compile(r'\d', re.ASCII)
_SPECIAL = re.compile(r'[^A-Za-z\d]', re.ASCII)

# Order matters: it is the order in which missing requirements are reported.
REQUIREMENTS = [
    ('at least 8 characters', lambda s: len(s) >= MIN_LENGTH),
    ('one uppercase letter', lambda s: bool(_UPPER.search(s))),
    ('one lowercase letter', lambda s: bool(_LOWER.search(s))),
    ('one number', lambda s: bool(_DIGIT.search(s))),
]


def strength_score(secret: str) -> int:
    """
    Score a candidate secret from 0 to 5.

    One point each for: length of at least 8, an uppercase letter, a
    lowercase letter, a digit, and a character that is not alphanumeric.
    """
    secret = secret or ''
    score = sum(1 for _, check in REQUIREMENTS if check(secret))
    if _SPECIAL.search(secret):
        score += 1
    return score


def strength_label(score: int) -> str:
    """Map a score onto its qualitative label."""
    if score < 2:
        return StrengthScore.WEAK
    if score == 2:
        return StrengthScore.FAIR
    if score == 3:
        return StrengthScore.GOOD
    return StrengthScore.STRONG


def strength(secret: str) -> StrengthScore:
    """Score and label for ``secret``, for rendering a strength meter."""
    score = strength_score(secret)
    return StrengthScore(score=score, label=strength_label(score))


def missing_requirements(secret: str) -> List[str]:
    """Requirements that ``secret`` does not satisfy, in a fixed order."""
    secret = secret or ''
    return [name for name, check in REQUIREMENTS if not check(secret)]


def is_acceptable(secret: str) -> bool:
    """True if ``secret`` may be used as a new credential."""
    return strength_score(secret) >= ACCEPTANCE_THRESHOLD


def is_present(value: Optional[str]) -> bool:
    """True if ``value`` is non-empty after trimming."""
    return bool(value and value.strip())


def is_email(value: Optional[str]) -> bool:
    """True if ``value`` looks like an email address."""
    return bool(value and EMAIL_PATTERN.search(value))


def secrets_match(new_secret: str, confirm_secret: str) -> bool:
    """True if the confirmation equals the new secret."""
    return new_secret == confirm_secret


def form_errors(form: Form) -> Dict[str, str]:
    """Reduce a validated form's errors to the first message per field."""
    return {name: messages[0] for name, messages in form.errors.items()
            if messages}


def form_data(**values: Any) -> MultiDict:
    """Package keyword values as form data."""
    return MultiDict({k: v if v is not None else ''
                      for k, v in values.items()})


class EmailShape(object):
    """Checks that a field looks like an email address."""

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or 'Please enter a valid email address'

    def __call__(self, form: Form, field: StringField) -> None:
        if not is_email(field.data):
            raise ValidationError(self.message)


class StrongEnough(object):
    """Checks that a field holds a secret that meets the threshold."""

    def __call__(self, form: Form, field: PasswordField) -> None:
        if not is_acceptable(field.data):
            missing = ', '.join(missing_requirements(field.data))
            raise ValidationError(f'Password must contain {missing}')


class LoginForm(Form):
    """Log in form."""

    identifier = StringField(
        'Email or phone number',
        validators=[DataRequired('Email or phone number is required')]
    )
    secret = PasswordField(
        'Password',
        validators=[DataRequired('Password is required')]
    )


class RecoveryRequestForm(Form):
    """Forgot-password form."""

    email = StringField(
        'Email address',
        validators=[DataRequired('Please enter your email address'),
                    EmailShape()]
    )


class NewCredentialForm(Form):
    """Redeem a recovery token and choose a new password."""

    token = HiddenField(
        'Reset token',
        validators=[DataRequired('Reset token is required')]
    )
    new_secret = PasswordField(
        'New password',
        validators=[DataRequired('New password is required'), StrongEnough()]
    )
    confirm_secret = PasswordField(
        'Confirm new password',
        validators=[DataRequired('Please confirm your new password'),
                    EqualTo('new_secret', 'Passwords do not match')]
    )


class ChangeCredentialForm(Form):
    """Change the password of an authenticated user."""

    current_secret = PasswordField(
        'Current password',
        validators=[DataRequired('Current password is required')]
    )
    new_secret = PasswordField(
        'New password',
        validators=[DataRequired('New password is required'), StrongEnough()]
    )
    confirm_secret = PasswordField(
        'Confirm new password',
        validators=[DataRequired('Please confirm your new password'),
                    EqualTo('new_secret', 'Passwords do not match')]
    )

    def validate_new_secret(self, field: PasswordField) -> None:
        """The new password must differ from the current one."""
        if field.data and field.data == self.current_secret.data:
            raise ValidationError(
                'New password must be different from current password'
            )


def check_new_secret(form: Form, field: str = 'new_secret') -> None:
    """
    Validate ``form``, raising the matching exception on failure.

    Raises
    ------
    :class:`.WeakCredentialError`
        If the new secret is present but below the acceptance threshold.
    :class:`.ValidationError`
        For any other field failure.

    """
    if form.validate():
        return
    errors = form_errors(form)
    candidate = getattr(form, field).data
    if candidate and not is_acceptable(candidate):
        raise exceptions.WeakCredentialError(missing_requirements(candidate),
                                             errors, field=field)
    raise exceptions.ValidationError(errors)
