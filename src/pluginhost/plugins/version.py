"""Semantic version handling for pluginhost.

Plugins may declare a ``min_host_version``; the loader refuses plugins the
running host cannot satisfy.  Compatibility is deliberately narrow: the
major component must match exactly and the host's minor component must be
at least the required one.  Patch releases are always compatible.

Shipped in this module
----------------------
- HOST_VERSION               — version of this plugin host
- Version                    — ``major.minor.patch`` value object
- parse_version              — parse ``X``, ``X.Y`` or ``X.Y.Z`` (optional ``v``)
- Constraint / ConstraintSet — ``>=1.0.0,<2.0.0`` style range checks
- check_plugin_compatibility — gate a manifest against a host version
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from pluginhost.schema.errors import IncompatibleVersionError, InvalidVersionError
from pluginhost.schema.manifest import PluginManifest

HOST_VERSION = "0.5.0"

_COMPONENT = re.compile(r"[0-9]+")

# Longest operators first so ">=" is not read as ">".
_OPERATORS: tuple[str, ...] = (">=", "<=", ">", "<", "=")


@dataclass(frozen=True, order=True)
class Version:
    """A ``major.minor.patch`` semantic version.

    Ordering is lexicographic on ``(major, minor, patch)``.

    Examples
    --------
    >>> parse_version("v1.2") == Version(1, 2, 0)
    True
    >>> str(Version(5))
    '5.0.0'
    """

    major: int = 0
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def compare(self, other: Version) -> int:
        """Return ``-1``, ``0`` or ``1`` as *self* is below, equal or above *other*."""
        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    def is_compatible_with(self, required: Version) -> bool:
        """Whether this (host) version satisfies *required*.

        Same major and at least the required minor; patch is ignored.
        """
        return self.major == required.major and self.minor >= required.minor


def parse_version(text: str) -> Version:
    """Parse ``X``, ``X.Y`` or ``X.Y.Z`` with an optional leading ``v``.

    Missing trailing components default to zero.

    Raises
    ------
    InvalidVersionError
        On an empty string, more than three components, or any component
        that is not a non-negative integer.
    """
    stripped = text.strip()
    if stripped.startswith("v"):
        stripped = stripped[1:]
    if not stripped:
        raise InvalidVersionError(
            f"invalid version {text!r}: empty", context={"version": text}
        )

    parts = stripped.split(".")
    if len(parts) > 3:
        raise InvalidVersionError(
            f"invalid version {text!r}: expected at most 3 components",
            context={"version": text},
        )

    numbers: list[int] = []
    for part in parts:
        if not _COMPONENT.fullmatch(part):
            raise InvalidVersionError(
                f"invalid version {text!r}: component {part!r} is not a number",
                context={"version": text},
            )
        numbers.append(int(part))

    while len(numbers) < 3:
        numbers.append(0)
    return Version(*numbers)


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Constraint:
    """A single comparison such as ``>=1.2.0``."""

    operator: str
    version: Version

    def check(self, candidate: Version) -> bool:
        """Return whether *candidate* satisfies this constraint.

        An unknown operator never matches.
        """
        cmp = candidate.compare(self.version)
        if self.operator == ">=":
            return cmp >= 0
        if self.operator == ">":
            return cmp > 0
        if self.operator == "=":
            return cmp == 0
        if self.operator == "<":
            return cmp < 0
        if self.operator == "<=":
            return cmp <= 0
        return False

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


@dataclass(frozen=True)
class ConstraintSet:
    """Constraints ANDed together; an empty set is always satisfied."""

    constraints: tuple[Constraint, ...] = field(default_factory=tuple)

    def check(self, candidate: Version) -> bool:
        return all(c.check(candidate) for c in self.constraints)

    def __len__(self) -> int:
        return len(self.constraints)

    def __str__(self) -> str:
        return ",".join(str(c) for c in self.constraints)


def parse_constraint(text: str) -> Constraint:
    """Parse ``[op]version``; the operator defaults to ``=``.

    Raises
    ------
    InvalidVersionError
        If *text* is empty or its version part does not parse.
    """
    stripped = text.strip()
    if not stripped:
        raise InvalidVersionError("empty version constraint")

    operator = "="
    for candidate in _OPERATORS:
        if stripped.startswith(candidate):
            operator = candidate
            stripped = stripped[len(candidate):].strip()
            break

    return Constraint(operator=operator, version=parse_version(stripped))


def parse_constraint_set(text: str) -> ConstraintSet:
    """Parse a comma-separated list of constraints.

    An empty or blank string yields an empty (always satisfied) set.
    """
    if not text.strip():
        return ConstraintSet()
    return ConstraintSet(tuple(parse_constraint(part) for part in text.split(",")))


# ---------------------------------------------------------------------------
# Plugin gating
# ---------------------------------------------------------------------------


def check_plugin_compatibility(
    manifest: PluginManifest, host_version: str = HOST_VERSION
) -> None:
    """Check that *host_version* satisfies the manifest's ``min_host_version``.

    A manifest without ``min_host_version`` is always compatible.

    Raises
    ------
    IncompatibleVersionError
        If either version fails to parse, or the host is incompatible.
    """
    if not manifest.min_host_version:
        return

    context: dict[str, object] = {
        "plugin_id": manifest.plugin_id,
        "min_host_version": manifest.min_host_version,
        "host_version": host_version,
    }

    try:
        host = parse_version(host_version)
    except InvalidVersionError as exc:
        raise IncompatibleVersionError(
            f"invalid host version {host_version!r}: {exc}", context=context
        ) from exc

    try:
        minimum = parse_version(manifest.min_host_version)
    except InvalidVersionError as exc:
        raise IncompatibleVersionError(
            f"invalid min_host_version {manifest.min_host_version!r} "
            f"in plugin {manifest.plugin_id}: {exc}",
            context=context,
        ) from exc

    if not host.is_compatible_with(minimum):
        raise IncompatibleVersionError(
            f"incompatible plugin version: plugin {manifest.plugin_id} requires "
            f"host version {minimum}, but current version is {host}",
            context=context,
        )
