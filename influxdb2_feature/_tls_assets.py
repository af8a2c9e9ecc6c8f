"""Resolve and materialise TLS assets for the influxdb2 feature.

Each asset (private key, certificate, CA certificate) is either passed through
by path or supplied inline as base64. Inline content is decoded, adjusted for
the platform's line endings and planned as a :class:`FileResource` at the
explicit path or a default path under the certificate directory.
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath

from influxdb2_feature._feature_models import (
    EnvironmentContext,
    FileResource,
    TlsAsset,
    TlsAssetKind,
)

logger = logging.getLogger(__name__)

DEFAULT_FILE_STEM = "Influxdb2Writer_influxdb2"

_BARE_LINE_FEED = re.compile(rb"(?<!\r)\n", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class ResolvedTlsAsset:
    """Outcome of resolving one TLS asset.

    Attributes
    ----------
    kind
        Asset kind.
    path
        Path to reference from the rendered object, or ``None``.
    resource
        File to write, or ``None`` when the operator placed it out-of-band.
    """

    kind: TlsAssetKind
    path: str | None
    resource: FileResource | None


def default_asset_path(cert_dir: PurePath, kind: TlsAssetKind) -> PurePath:
    """Return the default path for an inline asset of *kind*.

    Examples
    --------
    >>> from pathlib import PurePosixPath
    >>> str(default_asset_path(PurePosixPath("/var/lib/icinga2/certs"), TlsAssetKind.CACERT))
    '/var/lib/icinga2/certs/Influxdb2Writer_influxdb2_ca.crt'
    """
    return cert_dir / f"{DEFAULT_FILE_STEM}{kind.suffix}"


def decode_asset_content(content: str) -> bytes:
    """Decode inline base64 asset content, ignoring embedded whitespace."""
    return base64.b64decode("".join(content.split()), validate=True)


def normalise_line_endings(content: bytes, line_ending: str | None) -> bytes:
    r"""Replace every bare ``\n`` with *line_ending*; ``None`` keeps content.

    Examples
    --------
    >>> normalise_line_endings(b"a\nb\r\nc\n", "\r\n")
    b'a\r\nb\r\nc\r\n'
    >>> normalise_line_endings(b"a\nb", None)
    b'a\nb'
    """
    if line_ending is None:
        return content
    return _BARE_LINE_FEED.sub(line_ending.encode("ascii"), content)


def resolve_tls_asset(asset: TlsAsset, context: EnvironmentContext) -> ResolvedTlsAsset:
    """Decide the path and file resource for a single TLS asset.

    Parameters
    ----------
    asset : TlsAsset
        The inline content and explicit path supplied for the asset.
    context : EnvironmentContext
        Host facts providing the certificate directory, owner and platform.

    Returns
    -------
    ResolvedTlsAsset
        Resolved path and, when content was supplied inline, the file to write.
    """
    if asset.content is None:
        logger.debug("No inline %s supplied; using path %s", asset.kind.name, asset.path)
        return ResolvedTlsAsset(kind=asset.kind, path=asset.path, resource=None)

    if asset.path is not None:
        resolved_path = asset.path
    else:
        resolved_path = default_asset_path(context.cert_dir, asset.kind).as_posix()

    capabilities = context.capabilities
    content = normalise_line_endings(
        decode_asset_content(asset.content), capabilities.line_ending
    )
    is_key = asset.kind is TlsAssetKind.KEY
    resource = FileResource(
        path=PurePosixPath(resolved_path),
        content=content,
        owner=context.user,
        group=context.group,
        mode=capabilities.key_file_mode if is_key else None,
        show_diff=not is_key,
    )
    return ResolvedTlsAsset(kind=asset.kind, path=resolved_path, resource=resource)
