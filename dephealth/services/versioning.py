"""
npm-style semantic versions on top of ``packaging``.

Versions are parsed into ``packaging.version.Version`` and ranges are
translated into one ``SpecifierSet`` per ``||`` alternative. Supported range
syntax: exact versions, comparison operators, caret, tilde, x-ranges,
partial versions and hyphen ranges.
"""

import re
from typing import Iterable, List, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

SEMVER_PATTERN = re.compile(
    r"^\s*[v=]*\s*(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?\s*$"
)

PARTIAL_PATTERN = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-([0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)

COMPARATOR_PATTERN = re.compile(r"^(\^|~>|~|>=|<=|>|<|=)?(.*)$")

HYPHEN_PATTERN = re.compile(r"^(\S+)\s+-\s+(\S+)$")

ANY_RANGES = {"", "*", "x", "X", "latest"}

_PRE_LABELS = {"a": "alpha", "b": "beta", "rc": "rc"}


class InvalidVersionRange(ValueError):
    """Raised when a range string cannot be translated."""


# ── Versions ─────────────────────────────────────────────────────────


def _build(major: int, minor: int, patch: int, pre: Optional[str] = None) -> Version:
    core = f"{major}.{minor}.{patch}"
    if not pre:
        return Version(core)
    try:
        candidate = Version(f"{core}-{pre}")
    except InvalidVersion:
        candidate = None
    # "1.0.0-1" would parse as a post release
    if candidate is None or candidate.pre is None:
        return Version(f"{core}.dev0")
    return candidate


def parse(version: Optional[str]) -> Optional[Version]:
    """Parse a full ``major.minor.patch`` version, or return None."""
    if not isinstance(version, str):
        return None
    match = SEMVER_PATTERN.match(version)
    if not match:
        return None
    major, minor, patch, pre = match.groups()
    return _build(int(major), int(minor), int(patch), pre)


def format_version(version: Version) -> str:
    text = f"{version.major}.{version.minor}.{version.micro}"
    if version.pre:
        label, number = version.pre
        text += f"-{_PRE_LABELS.get(label, label)}.{number}"
    return text


def valid(version: Optional[str]) -> Optional[str]:
    """Return the cleaned version string if it is a valid semantic version."""
    parsed = parse(version)
    if parsed is None:
        return None
    return format_version(parsed)


def _require(version: str) -> Version:
    parsed = parse(version)
    if parsed is None:
        raise ValueError(f"Invalid version: {version!r}")
    return parsed


def compare(a: str, b: str) -> int:
    """Three-way compare. Raises ValueError for invalid versions."""
    va, vb = _require(a), _require(b)
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def gt(a: str, b: str) -> bool:
    return compare(a, b) > 0


def lt(a: str, b: str) -> bool:
    return compare(a, b) < 0


def major(version: str) -> int:
    return _require(version).major


def minor(version: str) -> int:
    return _require(version).minor


def patch(version: str) -> int:
    return _require(version).micro


def deltas(current: str, target: str) -> Tuple[int, int, int]:
    """(major, minor, patch) differences from current to target."""
    vc, vt = _require(current), _require(target)
    return vt.major - vc.major, vt.minor - vc.minor, vt.micro - vc.micro


def crosses_major(from_version: str, to_version: str) -> bool:
    """True when both versions parse and their major versions differ."""
    vf, vt = parse(from_version), parse(to_version)
    if vf is None or vt is None:
        return False
    return vf.major != vt.major


def inc(version: str, release: str) -> Optional[str]:
    """Bump ``patch``, ``minor`` or ``major``. A prerelease bumps to its own release first."""
    parsed = parse(version)
    if parsed is None:
        return None
    m, n, p = parsed.major, parsed.minor, parsed.micro
    pre = parsed.is_prerelease
    if release == "patch":
        return f"{m}.{n}.{p}" if pre else f"{m}.{n}.{p + 1}"
    if release == "minor":
        return f"{m}.{n}.0" if pre and p == 0 else f"{m}.{n + 1}.0"
    if release == "major":
        return f"{m}.0.0" if pre and n == 0 and p == 0 else f"{m + 1}.0.0"
    raise ValueError(f"Unknown release type: {release}")


def sort_desc(versions: Iterable[str]) -> List[str]:
    """Valid versions, newest first, duplicates removed. Invalid entries are dropped."""
    unique = {}
    for v in versions:
        parsed = parse(v)
        if parsed is not None and v not in unique:
            unique[v] = parsed
    return sorted(unique, key=lambda v: unique[v], reverse=True)


# ── Ranges ───────────────────────────────────────────────────────────


def _is_wild(part: Optional[str]) -> bool:
    return part is None or part in ("x", "X", "*")


def _comparator_specs(token: str) -> List[str]:
    match = COMPARATOR_PATTERN.match(token)
    op, rest = match.group(1) or "", match.group(2)
    partial = PARTIAL_PATTERN.match(rest)
    if not partial:
        raise InvalidVersionRange(f"Unsupported comparator: {token!r}")

    raw_major, raw_minor, raw_patch, pre = partial.groups()
    if _is_wild(raw_major):
        if op in (">", "<"):
            return ["<0.0.0"]
        return []

    M = int(raw_major)
    m = None if _is_wild(raw_minor) else int(raw_minor)
    p = None if _is_wild(raw_patch) or m is None else int(raw_patch)
    floor = str(_build(M, m or 0, p or 0, pre if p is not None else None))

    if op == "^":
        if m is None:
            upper = f"{M + 1}.0.0"
        elif M > 0:
            upper = f"{M + 1}.0.0"
        elif p is None or m > 0:
            upper = f"0.{m + 1}.0"
        else:
            upper = f"0.0.{p + 1}"
        return [f">={floor}", f"<{upper}"]

    if op in ("~", "~>"):
        upper = f"{M + 1}.0.0" if m is None else f"{M}.{m + 1}.0"
        return [f">={floor}", f"<{upper}"]

    if op in ("", "="):
        if m is None:
            return [f">={floor}", f"<{M + 1}.0.0"]
        if p is None:
            return [f">={floor}", f"<{M}.{m + 1}.0"]
        return [f"=={floor}"]

    if op == ">=":
        return [f">={floor}"]

    if op == "<":
        return [f"<{floor}"]

    if op == ">":
        if m is None:
            return [f">={M + 1}.0.0"]
        if p is None:
            return [f">={M}.{m + 1}.0"]
        return [f">{floor}"]

    # "<="
    if m is None:
        return [f"<{M + 1}.0.0"]
    if p is None:
        return [f"<{M}.{m + 1}.0"]
    return [f"<={floor}"]


def _alternative_specs(alternative: str) -> List[str]:
    alternative = alternative.strip()
    if alternative in ANY_RANGES:
        return []

    hyphen = HYPHEN_PATTERN.match(alternative)
    if hyphen:
        low, high = hyphen.groups()
        return _comparator_specs(f">={low}") + _comparator_specs(f"<={high}")

    normalized = re.sub(r"(>=|<=|>|<|=|\^|~>|~)\s+", r"\1", alternative)
    specs: List[str] = []
    for token in normalized.split():
        specs.extend(_comparator_specs(token))
    return specs


class VersionRange:
    """A translated npm range: a union of ``SpecifierSet`` alternatives."""

    def __init__(self, raw: str):
        self.raw = raw
        self.alternatives: List[SpecifierSet] = []
        text = raw.strip()
        parts = [text] if text in ANY_RANGES else text.split("||")
        for part in parts:
            try:
                self.alternatives.append(SpecifierSet(",".join(_alternative_specs(part))))
            except InvalidSpecifier as e:
                raise InvalidVersionRange(f"Unsupported range {raw!r}: {e}") from e

    def __repr__(self) -> str:
        return f"VersionRange({self.raw!r})"

    def contains(self, version: str) -> bool:
        parsed = parse(version)
        if parsed is None:
            return False
        return any(spec.contains(parsed) for spec in self.alternatives)

    def min_version(self) -> Optional[Version]:
        """Lowest version satisfying the range, like ``semver.minVersion``."""
        found: List[Version] = []
        for spec in self.alternatives:
            floor = Version("0.0.0")
            for clause in spec:
                bound = Version(clause.version)
                if clause.operator == ">":
                    bound = Version(f"{bound.major}.{bound.minor}.{bound.micro + 1}")
                elif clause.operator not in (">=", "=="):
                    continue
                if bound > floor:
                    floor = bound
            if spec.contains(floor, prereleases=True):
                found.append(floor)
        return min(found) if found else None


def valid_range(raw: Optional[str]) -> Optional[VersionRange]:
    if not isinstance(raw, str):
        return None
    try:
        return VersionRange(raw)
    except InvalidVersionRange:
        return None


def satisfies(version: str, raw_range: str) -> bool:
    version_range = valid_range(raw_range)
    if version_range is None:
        return False
    return version_range.contains(version)


def min_version(raw_range: str) -> Optional[str]:
    version_range = valid_range(raw_range)
    if version_range is None:
        return None
    lowest = version_range.min_version()
    return format_version(lowest) if lowest is not None else None
