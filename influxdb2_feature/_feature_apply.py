"""Apply a planned influxdb2 feature to the local filesystem."""

from __future__ import annotations

import difflib
import logging
import os
import shutil
import stat
from collections import abc as cabc
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from influxdb2_feature._feature_errors import FeatureApplyError
from influxdb2_feature._feature_models import FeaturePlan, FileResource
from influxdb2_feature._feature_toggle import (
    ServiceNotifier,
    build_toggle_resource,
    toggle_path,
)
from influxdb2_feature._icinga_dsl import object_is_sensitive, render_config_file

logger = logging.getLogger(__name__)

Report: TypeAlias = cabc.Callable[[str], object]


@dataclass(slots=True)
class ApplyResult:
    """Paths touched while applying a plan."""

    changed: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    notified: bool = False

    @property
    def has_changes(self) -> bool:
        """Whether any managed file was written or removed."""
        return bool(self.changed or self.removed)


def render_object_resource(plan: FeaturePlan) -> FileResource:
    """Render the writer object into the file resource for its target."""
    obj = plan.config_object
    content = render_config_file([obj])
    return FileResource(
        path=obj.target,
        content=content.encode("utf-8"),
        owner=plan.context.user,
        group=plan.context.group,
        show_diff=not object_is_sensitive(obj),
    )


def _read_existing(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        msg = f"Failed to read {path}: {exc}"
        raise FeatureApplyError(msg) from exc


def _report_change(
    resource: FileResource, path: Path, existing: bytes | None, report: Report
) -> None:
    action = "Created" if existing is None else "Updated"
    report(f"{action} {path}")
    if not resource.show_diff:
        report("  (content redacted)")
        return
    before = (existing or b"").decode("utf-8", errors="replace").splitlines(keepends=True)
    after = resource.content.decode("utf-8", errors="replace").splitlines(keepends=True)
    for line in difflib.unified_diff(before, after, str(path), str(path)):
        report(line.rstrip("\r\n"))


def _write_atomically(path: Path, content: bytes, mode: int | None) -> None:
    """Replace *path* with *content*, keeping its current mode unless *mode* is set."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode is None and path.exists():
        mode = stat.S_IMODE(path.stat().st_mode)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with suppress(FileNotFoundError):
        tmp_path.unlink()
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL
    fd = os.open(tmp_path, flags, 0o600 if mode is not None else 0o666)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
    except Exception:
        with suppress(FileNotFoundError):
            os.unlink(tmp_path)
        raise
    tmp_path.replace(path)


def write_file_resource(resource: FileResource, report: Report = print) -> bool:
    """Ensure *resource* is on disk with its content, mode and ownership.

    Parameters
    ----------
    resource : FileResource
        File to materialise.
    report : Callable[[str], object], optional
        Sink for change output (defaults to ``print``).

    Returns
    -------
    bool
        ``True`` when the file content was created or changed.

    Raises
    ------
    FeatureApplyError
        If writing, changing the mode or changing ownership fails.
    """
    path = Path(str(resource.path))
    existing = _read_existing(path)
    changed = existing != resource.content
    try:
        if changed:
            _write_atomically(path, resource.content, resource.mode)
        if resource.mode is not None:
            path.chmod(resource.mode)
        if resource.owner is not None or resource.group is not None:
            shutil.chown(path, user=resource.owner, group=resource.group)
    except (OSError, LookupError) as exc:
        msg = f"Failed to write {path}: {exc}"
        raise FeatureApplyError(msg) from exc

    if changed:
        _report_change(resource, path, existing, report)
    else:
        logger.debug("%s already up to date", path)
    return changed


def remove_file(path: Path, report: Report = print) -> bool:
    """Remove *path* when it exists; return ``True`` if something was removed."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        msg = f"Failed to remove {path}: {exc}"
        raise FeatureApplyError(msg) from exc
    report(f"Removed {path}")
    return True


def apply_feature_plan(
    plan: FeaturePlan,
    *,
    notifier: ServiceNotifier | None = None,
    report: Report = print,
) -> ApplyResult:
    """Write the files described by *plan* and notify the service.

    TLS material is written first, then the writer object, then the feature
    toggle. The service is notified only when the feature is enabled and a
    managed file changed.
    """
    result = ApplyResult()
    resources = [*plan.tls_files, render_object_resource(plan)]
    toggle_resource = build_toggle_resource(plan.toggle, plan.context)
    if toggle_resource is not None:
        resources.append(toggle_resource)

    for resource in resources:
        if write_file_resource(resource, report):
            result.changed.append(Path(str(resource.path)))

    if toggle_resource is None:
        disabled = Path(str(toggle_path(plan.context, plan.toggle.name)))
        if remove_file(disabled, report):
            result.removed.append(disabled)

    if plan.notify_service and result.has_changes:
        (notifier or ServiceNotifier(report=report)).notify()
        result.notified = True
    return result
