"""Secret value wrappers and masking helpers.

A value supplied by the operator is either :class:`PlainText` (or a bare
``str``) or already wrapped as :class:`Sensitive`. :func:`normalize_secret`
collapses both forms into ``Sensitive`` so nothing downstream ever handles the
raw string by accident.

Examples
--------
>>> token = normalize_secret("supersecret")
>>> token
Sensitive('[redacted]')
>>> normalize_secret(token) is token
True
>>> token.reveal()
'supersecret'
"""

from __future__ import annotations

from collections import abc as cabc
from dataclasses import dataclass, field
from typing import TypeAlias

REDACTED = "[redacted]"


@dataclass(frozen=True, slots=True)
class PlainText:
    """A secret supplied as clear text by the caller."""

    value: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class Sensitive:
    """A secret whose value is hidden from ``repr`` and ``str``."""

    _value: str = field(repr=False)

    def reveal(self) -> str:
        """Return the wrapped value for the final rendering step."""
        return self._value

    def __repr__(self) -> str:
        return f"Sensitive({REDACTED!r})"

    def __str__(self) -> str:
        return REDACTED


Secret: TypeAlias = str | PlainText | Sensitive


def normalize_secret(value: Secret) -> Sensitive:
    """Return *value* as a :class:`Sensitive` without double wrapping.

    Parameters
    ----------
    value : str | PlainText | Sensitive
        Secret in any of the accepted forms.

    Returns
    -------
    Sensitive
        The wrapped secret. Already wrapped values are returned unchanged.

    Raises
    ------
    TypeError
        If *value* is not one of the accepted forms.
    """
    if isinstance(value, Sensitive):
        return value
    if isinstance(value, PlainText):
        return Sensitive(value.value)
    if isinstance(value, str):
        return Sensitive(value)
    msg = f"secret must be str, PlainText or Sensitive, got {type(value).__name__}"
    raise TypeError(msg)


def contains_sensitive(value: object) -> bool:
    """Return ``True`` when *value* or any nested value is :class:`Sensitive`.

    Examples
    --------
    >>> contains_sensitive({"a": [1, Sensitive("x")]})
    True
    >>> contains_sensitive({"a": "x"})
    False
    """
    if isinstance(value, Sensitive):
        return True
    if isinstance(value, cabc.Mapping):
        return any(contains_sensitive(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_sensitive(item) for item in value)
    return False


def mask_secret(value: Sensitive, stream: cabc.Callable[[str], object] = print) -> None:
    """Emit the GitHub Actions masking command for *value*.

    Nothing is written when the secret is empty.
    """
    revealed = value.reveal()
    if revealed:
        stream(f"::add-mask::{revealed}")
