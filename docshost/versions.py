"""Semantic version parsing and request matching for crate URLs.

``/{name}/{version}`` accepts an exact version (``1.2.3``), ``latest`` /
``newest`` / ``*``, or a Cargo-style requirement: caret (``^1.2``, or a bare
partial such as ``1.2``), tilde (``~1.2``), wildcards (``1.*``, ``1.2.x``),
comparisons (``>=1.0``, ``<2``) and comma-separated lists of those.
Anything else is a bad request.

Parsing, ordering and comparator matching are done by ``semver``; this
module only lowers the requirement syntax to plain comparators.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Protocol

from semver import Version

from docshost.exceptions import BadRequest, VersionNotFound

LATEST_ALIASES = frozenset({"latest", "newest", "*"})

_WILDCARDS = frozenset({"*", "x", "X"})
_OPERATOR = re.compile(r"^(\^|~|>=|<=|>|<|=)?\s*")
_NUMBER = re.compile(r"^(0|[1-9]\d*)$")


def parse_version(text: str) -> Version:
    """Parse an exact semver string; raises ValueError when malformed."""
    return Version.parse(text.strip())


def version_key(text: str) -> tuple[bool, Version]:
    """Sort key for stored version strings; unparseable ones sort lowest."""
    try:
        return (True, parse_version(text))
    except ValueError:
        return (False, Version(0, 0, 0))


@dataclass(frozen=True)
class Requirement:
    """``exact`` for a full version, otherwise ``comparators`` that must all hold.

    No exact version and no comparators means "latest".
    """

    exact: Version | None = None
    comparators: tuple[str, ...] = ()
    allow_pre: bool = False

    @property
    def is_latest(self) -> bool:
        return self.exact is None and not self.comparators

    def matches(self, version: Version) -> bool:
        if self.exact is not None:
            # Build metadata does not take part in comparisons.
            return version.compare(self.exact) == 0
        if version.prerelease and not self.allow_pre:
            return False
        return all(version.match(expr) for expr in self.comparators)


def _invalid(text: str) -> BadRequest:
    return BadRequest(ValueError(f"invalid semver requirement: {text!r}"))


def _partial(text: str, original: str) -> tuple[int | None, int | None, int | None, str, bool]:
    """Split ``1``, ``1.2``, ``1.*`` or ``1.2.3-pre`` into components.

    Missing or wildcard components come back as None, followed by the
    pre-release suffix (empty when absent) and whether a wildcard was used.
    """
    core, dash, pre = text.partition("-")
    if dash and not pre:
        raise _invalid(original)
    core = core.split("+", 1)[0]
    parts = core.split(".")
    if not 1 <= len(parts) <= 3:
        raise _invalid(original)

    numbers: list[int | None] = []
    for part in parts:
        if part in _WILDCARDS:
            numbers.append(None)
        elif _NUMBER.match(part):
            if numbers and numbers[-1] is None:
                # 1.*.3
                raise _invalid(original)
            numbers.append(int(part))
        else:
            raise _invalid(original)
    if pre and (len(numbers) != 3 or None in numbers):
        raise _invalid(original)
    while len(numbers) < 3:
        numbers.append(None)
    wildcard = any(part in _WILDCARDS for part in parts)
    major, minor, patch = numbers
    return major, minor, patch, pre, wildcard


def _full(major: int, minor: int | None, patch: int | None, pre: str = "") -> str:
    text = f"{major}.{minor or 0}.{patch or 0}"
    return f"{text}-{pre}" if pre else text


def _bump(major: int, minor: int | None, patch: int | None) -> str:
    """Exclusive upper bound of the range a partial version names."""
    if minor is None:
        return f"{major + 1}.0.0"
    if patch is None:
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def _caret_bound(major: int, minor: int | None, patch: int | None) -> str:
    # The left-most non-zero component is fixed.
    if major > 0 or minor is None:
        return f"{major + 1}.0.0"
    if minor > 0 or patch is None:
        return f"{major}.{minor + 1}.0"
    return f"{major}.{minor}.{patch + 1}"


def _lower(op: str, text: str, original: str) -> list[str]:
    """Lower one comparator to ``semver`` match expressions."""
    major, minor, patch, pre, wildcard = _partial(text, original)
    if major is None:
        if op not in ("", "="):
            raise _invalid(original)
        return []

    low = _full(major, minor, patch, pre)
    if pre:
        try:
            Version.parse(low)
        except ValueError:
            raise _invalid(original) from None
    if op == "^" or (op == "" and not wildcard):
        return [f">={low}", f"<{_caret_bound(major, minor, patch)}"]
    if op == "~":
        upper = f"{major + 1}.0.0" if minor is None else f"{major}.{minor + 1}.0"
        return [f">={low}", f"<{upper}"]
    if op in ("=", ""):
        if patch is not None:
            return [f"=={low}"]
        return [f">={low}", f"<{_bump(major, minor, patch)}"]
    if op == ">=":
        return [f">={low}"]
    if op == "<":
        return [f"<{low}"]
    if op == ">":
        return [f">{low}"] if patch is not None else [f">={_bump(major, minor, patch)}"]
    # "<="
    return [f"<={low}"] if patch is not None else [f"<{_bump(major, minor, patch)}"]


def parse_requirement(text: str) -> Requirement:
    """Parse the version segment of a crate URL.

    A full version with no operator is an exact request. Raises BadRequest
    for anything that is neither a version nor a supported requirement.
    """
    original = text
    text = text.strip()
    if text.lower() in LATEST_ALIASES or text == "":
        return Requirement()
    try:
        return Requirement(exact=parse_version(text))
    except ValueError:
        pass

    comparators: list[str] = []
    allow_pre = False
    for item in text.split(","):
        item = item.strip()
        match = _OPERATOR.match(item)
        op, rest = match.group(1) or "", item[match.end():]
        if not rest:
            raise _invalid(original)
        if op == "=" and "," not in text:
            try:
                return Requirement(exact=parse_version(rest))
            except ValueError:
                pass
        comparators.extend(_lower(op, rest, original))
        allow_pre = allow_pre or "-" in rest
    return Requirement(comparators=tuple(comparators), allow_pre=allow_pre)


class HasVersion(Protocol):
    version: str
    yanked: bool


def match_version(releases: Iterable[HasVersion], requested: str) -> HasVersion:
    """Pick the release ``requested`` refers to.

    Exact versions match yanked releases too (their pages stay reachable);
    requirements and ``latest`` only ever pick non-yanked releases.
    Raises BadRequest or VersionNotFound.
    """
    req = parse_requirement(requested)
    candidates = []
    for release in releases:
        try:
            version = parse_version(release.version)
        except ValueError:
            continue
        if not req.matches(version):
            continue
        if release.yanked and req.exact is None:
            continue
        candidates.append((version, release))

    if not candidates:
        raise VersionNotFound()
    return max(candidates, key=lambda pair: pair[0])[1]
