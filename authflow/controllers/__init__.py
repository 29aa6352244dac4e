"""Flow controllers for login, recovery and privileged access."""

from .login import LoginController, LoginState
from .recovery import RecoveryController, RecoveryState, RecoveryStep
from .challenge import ChallengeController, ChallengeState, ChallengeStatus
from .change import ChangeCredentialController, ChangeState
