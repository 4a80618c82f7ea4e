"""Command timeout resolution."""

import logging
from typing import Optional

from sqlhelper.config.models import TimeoutSettings

logger = logging.getLogger(__name__)


class TimeoutResolver:
    """Resolves the effective command timeout.

    Precedence is global override, then instance override, then the
    value supplied with the call. Exactly one of them wins; they are
    never combined.
    """

    def __init__(self, settings: Optional[TimeoutSettings] = None, instance_override: Optional[int] = None) -> None:
        self.settings = settings or TimeoutSettings()
        self.instance_override = instance_override

    @property
    def default_timeout(self) -> int:
        return self.settings.default_timeout

    def resolve(self, timeout: Optional[int] = None) -> int:
        """Return the timeout in seconds to use for one command.

        Args:
            timeout: Per-call timeout. None means the configured default.
        """
        if self.settings.global_override is not None:
            logger.debug(f"Using global timeout override of {self.settings.global_override}s")
            return self.settings.global_override

        if self.instance_override is not None:
            return self.instance_override

        return self.default_timeout if timeout is None else timeout

    def resolve_global(self, timeout: int) -> int:
        """Resolve against the global override only (used by health checks)."""
        if self.settings.global_override is not None:
            return self.settings.global_override
        return timeout
