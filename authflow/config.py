"""Configuration for the authentication and recovery flows."""
import secrets
import os

LOGLEVEL = int(os.environ.get('LOGLEVEL', '20'))
"""Log level applied by :func:`authflow.logging.getLogger`."""

#################### Recovery ####################
RECOVERY_TOKEN_TTL_MINUTES = int(
    os.environ.get('RECOVERY_TOKEN_TTL_MINUTES', '15')
)
"""Validity window of a recovery token, in minutes.

This is both the window enforced by
:class:`authflow.services.tokens.RecoveryTokenIssuer` and the window stated
to the user in :attr:`RecoveryController.token_notice`. They must agree.
"""

RECOVERY_TOKEN_SECRET = os.environ.get('RECOVERY_TOKEN_SECRET',
                                       secrets.token_urlsafe(32))
"""Secret used to sign recovery tokens (HS256)."""

RECOVERY_SUCCESS_DELAY = float(os.environ.get('RECOVERY_SUCCESS_DELAY', '2.0'))
"""Seconds between reaching SUCCESS and firing the completion callback."""

CHANGE_SUCCESS_DELAY = float(os.environ.get('CHANGE_SUCCESS_DELAY', '3.0'))
"""Seconds between a successful password change and the success callback."""

#################### Login ####################
MAX_LOGIN_ATTEMPTS = int(os.environ.get('MAX_LOGIN_ATTEMPTS', '5'))
"""Consecutive failed logins after which an account is locked."""

LOCKOUT_MINUTES = int(os.environ.get('LOCKOUT_MINUTES', '120'))
"""How long a locked account stays locked, in minutes."""

#################### Privileged-access challenge ####################
ONE_TIME_CODE_LENGTH = int(os.environ.get('ONE_TIME_CODE_LENGTH', '6'))
"""Number of characters in a one-time code."""

CHALLENGE_WINDOW_SECONDS = int(
    os.environ.get('CHALLENGE_WINDOW_SECONDS', '60')
)
"""Resend cooldown, in ticks."""

TICK_INTERVAL = float(os.environ.get('TICK_INTERVAL', '1.0'))
"""Seconds per countdown tick."""

VERIFY_LATENCY = float(os.environ.get('VERIFY_LATENCY', '1.5'))
"""Simulated latency of the reference one-time code verifier, in seconds."""

DEMO_ONE_TIME_CODE = os.environ.get('DEMO_ONE_TIME_CODE', None)
"""If set, the reference code channel always issues this code.

Useful for demos and local development only.
"""

#################### Demonstration affordances ####################
REVEAL_SECRETS_FOR_TESTING = bool(int(
    os.environ.get('REVEAL_SECRETS_FOR_TESTING', '0')
))
"""Surface reset tokens and one-time codes to the caller.

Never enable this in production: the values must only travel out of band.
"""
