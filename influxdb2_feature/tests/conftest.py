from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path, PurePosixPath

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from influxdb2_feature._feature_models import (  # imported after sys.path mutation
    EnvironmentContext,
    PlatformFamily,
)


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., EnvironmentContext]:
    """Return a factory for contexts rooted in ``tmp_path`` with no owner."""

    def _make(
        platform: PlatformFamily = PlatformFamily.DEBIAN,
        *,
        base_configured: bool = True,
    ) -> EnvironmentContext:
        return EnvironmentContext(
            base_configured=base_configured,
            platform=platform,
            user=None,
            group=None,
            conf_dir=PurePosixPath(tmp_path / "etc"),
            cert_dir=PurePosixPath(tmp_path / "certs"),
        )

    return _make
