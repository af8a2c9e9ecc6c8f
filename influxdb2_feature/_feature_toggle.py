"""Feature toggle and service notification for Icinga 2 features.

Icinga 2 loads every file under ``features-enabled``. Enabling a feature
places an include of its ``features-available`` file there; disabling removes
it. Reloading the daemon is delegated to a configurable command run through
``plumbum``.
"""

from __future__ import annotations

import logging
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath

from plumbum import CommandNotFound, local
from plumbum.commands.processes import ProcessExecutionError

from influxdb2_feature._feature_errors import FeatureApplyError
from influxdb2_feature._feature_models import (
    EnvironmentContext,
    FeatureToggle,
    FileResource,
)

logger = logging.getLogger(__name__)


def toggle_path(context: EnvironmentContext, name: str) -> PurePath:
    """Return the ``features-enabled`` file for feature *name*."""
    return PurePosixPath(context.conf_dir) / "features-enabled" / f"{name}.conf"


def build_toggle_resource(
    toggle: FeatureToggle, context: EnvironmentContext
) -> FileResource | None:
    """Return the include file for an enabled feature, or ``None`` if disabled.

    Examples
    --------
    >>> from influxdb2_feature._feature_models import PlatformFamily
    >>> ctx = EnvironmentContext.for_platform(PlatformFamily.REDHAT)
    >>> build_toggle_resource(FeatureToggle("influxdb2", True), ctx).content
    b'include "../features-available/influxdb2.conf"\\n'
    >>> build_toggle_resource(FeatureToggle("influxdb2", False), ctx) is None
    True
    """
    if not toggle.enabled:
        return None
    line_ending = context.capabilities.line_ending or "\n"
    content = f'include "../features-available/{toggle.name}.conf"{line_ending}'
    return FileResource(
        path=toggle_path(context, toggle.name),
        content=content.encode("utf-8"),
        owner=context.user,
        group=context.group,
    )


@dataclass(frozen=True, slots=True)
class ServiceNotifier:
    """Reload the Icinga 2 service after configuration changes.

    Attributes
    ----------
    reload_command
        Command and arguments to run, e.g. ``("systemctl", "reload",
        "icinga2")``. With no command the notifier only reports that a reload
        is pending.
    report
        Sink for user-facing status lines.
    """

    reload_command: tuple[str, ...] | None = None
    report: cabc.Callable[[str], object] = print

    def notify(self) -> None:
        """Run the reload command.

        Raises
        ------
        FeatureApplyError
            If the command is missing or exits with a non-zero status.
        """
        if not self.reload_command:
            self.report("Icinga 2 must be reloaded to apply the influxdb2 feature.")
            return

        program, *args = self.reload_command
        logger.debug("Running reload command: %s", " ".join(self.reload_command))
        try:
            local[program][args]()
        except CommandNotFound as exc:
            msg = f"Reload command {program!r} not found"
            raise FeatureApplyError(msg) from exc
        except ProcessExecutionError as exc:
            msg = f"Reload command {program!r} failed: {exc.stderr.strip()}"
            raise FeatureApplyError(msg) from exc
        self.report(f"Reloaded Icinga 2 via {' '.join(self.reload_command)}.")
