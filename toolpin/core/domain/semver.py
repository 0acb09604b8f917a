"""
Semantic versions and npm-style ranges (pure).

Parses exact versions, orders them by semver precedence, and tests
them against range expressions (``1.x``, ``^1.2.0``, ``>=2 <3``,
``1.2 - 1.4``, ``a || b``). No I/O.

Range satisfaction here is prerelease-inclusive: prerelease tags are
dropped from both the candidate version and every comparator before
testing, so ``2.0.0-rc.1`` satisfies ``>=2.0.0``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

_NUM = r"0|[1-9]\d*"
_IDENT = r"[0-9A-Za-z-]+"

_VERSION_RE = re.compile(
    rf"^[v=]*(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?$"
)

_XR = rf"{_NUM}|[xX*]"
_PARTIAL = (
    rf"[v=]*(?P<major>{_XR})"
    rf"(?:\.(?P<minor>{_XR})"
    rf"(?:\.(?P<patch>{_XR})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    rf"(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?)?)?"
)
_COMPARATOR_RE = re.compile(rf"^(?P<op><=|>=|<|>|=|~>|~|\^)?{_PARTIAL}$")
_PARTIAL_RE = re.compile(rf"^{_PARTIAL}$")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OP_SPACE_RE = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")

Triple = tuple[int, int, int]
# (operator, version) with operator in <, <=, >, >=, =
Comparator = tuple[str, Triple]

_NEVER: list[Comparator] = [("<", (0, 0, 0))]


@dataclass(frozen=True)
class SemVer:
    """A parsed exact version."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    @property
    def release(self) -> Triple:
        return (self.major, self.minor, self.patch)

    def precedence_key(self) -> tuple:
        """Sort key implementing semver precedence (build ignored)."""
        if not self.prerelease:
            return (self.release, 1, ())
        idents = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (self.release, 0, idents)

    def __str__(self) -> str:
        text = "%d.%d.%d" % self.release
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse_version(value: str | None) -> SemVer | None:
    """Parse an exact version, or return None if ``value`` isn't one."""
    if not value:
        return None
    m = _VERSION_RE.match(value.strip())
    if m is None:
        return None
    return SemVer(
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        prerelease=tuple(m.group("pre").split(".")) if m.group("pre") else (),
        build=tuple(m.group("build").split(".")) if m.group("build") else (),
    )


def is_valid_version(value: str | None) -> bool:
    return parse_version(value) is not None


def is_valid_range(value: str | None) -> bool:
    """Whether ``value`` parses as a range expression (exact versions included)."""
    if value is None:
        return False
    try:
        parse_range(value)
    except ValueError:
        return False
    return True


def parse_range(value: str) -> list[list[Comparator]]:
    """Desugar a range expression into OR-ed sets of AND-ed comparators.

    An empty comparator set matches every version.

    Raises:
        ValueError: If the expression isn't a valid range.
    """
    sets: list[list[Comparator]] = []
    for chunk in value.split("||"):
        chunk = chunk.strip()
        hyphen = _HYPHEN_RE.match(chunk)
        if hyphen:
            sets.append(_hyphen(hyphen.group("low"), hyphen.group("high")))
            continue
        comparators: list[Comparator] = []
        for token in _OP_SPACE_RE.sub(r"\1", chunk).split():
            m = _COMPARATOR_RE.match(token)
            if m is None:
                raise ValueError(f"Invalid range: {value!r}")
            comparators.extend(_expand(m.group("op") or "", *_parts(m)))
        sets.append(comparators)
    return sets


def satisfies_with_prereleases(version: str | None, range_: str) -> bool:
    """Test ``version`` against ``range_``, ignoring prerelease tags."""
    try:
        sets = parse_range(range_)
    except ValueError:
        return False
    parsed = parse_version(version)
    if parsed is None:
        return False
    release = parsed.release
    return any(all(_test(c, release) for c in comparators) for comparators in sets)


def sort_descending(versions: Iterable[str]) -> list[str]:
    """Sort exact versions from highest to lowest precedence.

    Strings that aren't valid versions are dropped.
    """
    parsed = [(v, parse_version(v)) for v in versions]
    valid = [(v, p) for v, p in parsed if p is not None]
    valid.sort(key=lambda item: item[1].precedence_key(), reverse=True)
    return [v for v, _ in valid]


def strip_build(reference: str) -> str:
    """Drop a ``+build`` suffix (e.g. a content hash) from a reference."""
    return reference.split("+", 1)[0]


# ── Internals ───────────────────────────────────────────────────


def _parts(m: re.Match) -> tuple[int | None, int | None, int | None]:
    def num(name: str) -> int | None:
        raw = m.group(name)
        if raw is None or raw in ("x", "X", "*"):
            return None
        return int(raw)

    major, minor, patch = num("major"), num("minor"), num("patch")
    # A wildcard swallows every component after it
    if major is None:
        return None, None, None
    if minor is None:
        return major, None, None
    return major, minor, patch


def _expand(op: str, major: int | None, minor: int | None, patch: int | None) -> list[Comparator]:
    if major is None:
        if op in ("<", ">"):
            return list(_NEVER)
        return []

    if op in ("", "="):
        if minor is None:
            return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
        if patch is None:
            return [(">=", (major, minor, 0)), ("<", (major, minor + 1, 0))]
        return [("=", (major, minor, patch))]

    if op in ("~", "~>"):
        if minor is None:
            return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
        return [(">=", (major, minor, patch or 0)), ("<", (major, minor + 1, 0))]

    if op == "^":
        if minor is None:
            return [(">=", (major, 0, 0)), ("<", (major + 1, 0, 0))]
        if patch is None:
            if major == 0:
                return [(">=", (0, minor, 0)), ("<", (0, minor + 1, 0))]
            return [(">=", (major, minor, 0)), ("<", (major + 1, 0, 0))]
        low = (major, minor, patch)
        if major != 0:
            return [(">=", low), ("<", (major + 1, 0, 0))]
        if minor != 0:
            return [(">=", low), ("<", (0, minor + 1, 0))]
        return [(">=", low), ("<", (0, 0, patch + 1))]

    # Primitive operators with a partial version
    if minor is None:
        if op == ">":
            return [(">=", (major + 1, 0, 0))]
        if op == "<=":
            return [("<", (major + 1, 0, 0))]
        return [(op, (major, 0, 0))]
    if patch is None:
        if op == ">":
            return [(">=", (major, minor + 1, 0))]
        if op == "<=":
            return [("<", (major, minor + 1, 0))]
        return [(op, (major, minor, 0))]
    return [(op, (major, minor, patch))]


def _hyphen(low: str, high: str) -> list[Comparator]:
    low_m = _PARTIAL_RE.match(low)
    high_m = _PARTIAL_RE.match(high)
    if low_m is None or high_m is None:
        raise ValueError(f"Invalid hyphen range: {low} - {high}")

    comparators: list[Comparator] = []
    major, minor, patch = _parts(low_m)
    if major is not None:
        comparators.append((">=", (major, minor or 0, patch or 0)))

    major, minor, patch = _parts(high_m)
    if major is None:
        pass
    elif minor is None:
        comparators.append(("<", (major + 1, 0, 0)))
    elif patch is None:
        comparators.append(("<", (major, minor + 1, 0)))
    else:
        comparators.append(("<=", (major, minor, patch)))
    return comparators


def _test(comparator: Comparator, release: Triple) -> bool:
    op, bound = comparator
    if op == "<":
        return release < bound
    if op == "<=":
        return release <= bound
    if op == ">":
        return release > bound
    if op == ">=":
        return release >= bound
    return release == bound
