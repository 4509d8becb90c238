"""Domain models for env-map secret management."""
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import ValidationError

# Flat map of environment variables; None means the key is absent.
EnvMap = Dict[str, Optional[str]]


@dataclass(frozen=True)
class DeletionPolicy:
    """
    How a secret is deleted.

    Either recoverable (optionally with an explicit recovery window, otherwise
    the Secrets Manager default applies) or irrecoverable. Build instances with
    ``from_options`` so the two CLI flags can never both take effect.
    """
    force_without_recovery: bool = False
    recovery_window_days: Optional[int] = None

    @classmethod
    def from_options(
        cls,
        recovery_window_days: Optional[int] = None,
        force_without_recovery: Optional[bool] = None,
    ) -> "DeletionPolicy":
        if recovery_window_days is not None and force_without_recovery is not None:
            raise ValidationError(
                "recovery_window_days and force_without_recovery are mutually exclusive"
            )

        if recovery_window_days is not None:
            if isinstance(recovery_window_days, bool) or not isinstance(recovery_window_days, int):
                raise ValidationError(
                    f"recovery_window_days must be an integer (got {recovery_window_days!r})"
                )
            if recovery_window_days <= 0:
                raise ValidationError(
                    f"recovery_window_days must be positive (got {recovery_window_days})"
                )
            return cls(recovery_window_days=recovery_window_days)

        return cls(force_without_recovery=bool(force_without_recovery))

    @property
    def recoverable(self) -> bool:
        return not self.force_without_recovery

    def to_request(self) -> Dict[str, object]:
        """DeleteSecret request parameters for this policy."""
        if self.force_without_recovery:
            return {"ForceDeleteWithoutRecovery": True}
        if self.recovery_window_days is not None:
            return {"RecoveryWindowInDays": self.recovery_window_days}
        return {}
