"""Exception hierarchy for the influxdb2 feature configurator.

Callers can catch :class:`FeatureError` to handle every failure raised while
planning or applying the feature, or one of the subclasses to react to a
specific stage.

Exceptions
----------
FeatureError
PreconditionError
FeatureValidationError
FeatureApplyError
"""

from __future__ import annotations


class FeatureError(Exception):
    """Base error for influxdb2 feature configuration."""


class PreconditionError(FeatureError):
    """Raised when the base Icinga 2 installation is not configured.

    Examples
    --------
    >>> raise PreconditionError("include the icinga2 base configuration first")
    """


class FeatureValidationError(FeatureError, ValueError):
    """Raised when a parameter fails its type or format constraint."""


class FeatureApplyError(FeatureError):
    """Raised when writing files or notifying the service fails."""
