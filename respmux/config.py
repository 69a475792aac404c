from __future__ import annotations

import os
from typing import Optional


def env_flag(name: str) -> bool:
    """
    Whether the environment variable :paramref:`name` is set to
    ``1``, ``true`` or ``t`` (case insensitive)
    """
    return os.environ.get(name, "").strip().lower() in {"1", "true", "t"}


class _Config:
    #: Environment variable enabling runtime type checks of reply callbacks
    RUNTIME_CHECKS_ENV = "RESPMUX_RUNTIME_CHECKS"
    #: Environment variable enabling optimized mode
    OPTIMIZED_ENV = "RESPMUX_OPTIMIZED"

    def __init__(self) -> None:
        self._optimized: Optional[bool] = None

    def __repr__(self) -> str:
        return f"Config<runtime_checks={self.runtime_checks},optimized={self.optimized}>"

    @property
    def runtime_checks(self) -> bool:
        """
        Whether the ``transform`` method of every reply callback is wrapped
        with :func:`beartype.beartype`. Enabled by setting the environment
        variable ``RESPMUX_RUNTIME_CHECKS`` to ``true`` before
        :mod:`respmux` is imported, since callbacks are wrapped when their
        classes are created.
        """
        return env_flag(self.RUNTIME_CHECKS_ENV)

    @property
    def optimized(self) -> bool:
        """
        When ``optimized`` is ``True`` the packer sends command arguments
        without validating their types. Unless explicitly set with
        ``respmux.Config.optimized = ...`` (which takes precedence) it is
        enabled by running python with ``-O`` or by setting the environment
        variable ``RESPMUX_OPTIMIZED`` to ``true``.
        """
        if self._optimized is not None:
            return self._optimized
        return not __debug__ or env_flag(self.OPTIMIZED_ENV)

    @optimized.setter
    def optimized(self, value: Optional[bool]) -> None:
        self._optimized = value


#: Used to configure global behaviors of the respmux library
Config = _Config()
