"""Path pattern compilation for include/exclude lists.

Patterns carry an optional syntax prefix, ``glob:`` or ``regex:``.  A
pattern without a prefix is a glob.  Both syntaxes match the *whole*
relative path, written with ``/`` separators.

Glob rules:

* ``*`` matches within a single path segment (never ``/``)
* ``**`` matches across segments
* ``?`` matches one character other than ``/``
* ``[abc]`` / ``[a-z]`` / ``[!abc]`` character classes (``/`` never matches)
* ``{src,test}`` alternation (no nesting)
* ``\\`` escapes the next character

Leading dots are ordinary characters: ``*`` matches ``.hidden``.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterable

from .exceptions import PatternError

GLOB_PREFIX = "glob:"
REGEX_PREFIX = "regex:"

# Repository metadata is never published, whatever the include list says.
ALWAYS_IGNORED: tuple[str, ...] = (".git/**",)

_REGEX_META = set(".^$+(){}[]|\\")


def with_default_syntax(pattern: str) -> str:
    """Return *pattern* with an explicit syntax prefix (``glob:`` by default)."""
    if pattern.startswith(GLOB_PREFIX) or pattern.startswith(REGEX_PREFIX):
        return pattern
    return GLOB_PREFIX + pattern


def escape(path: str) -> str:
    """Escape glob metacharacters so *path* matches itself literally."""
    return re.sub(r"([*?\[\]{}\\,])", r"\\\1", path)


def glob_to_regex(glob: str) -> str:
    """Translate a glob into an unanchored regular expression string.

    Raises :class:`PatternError` for a trailing escape, a ``/`` inside a
    character class, nested or unterminated groups and unterminated classes.
    """
    out: list[str] = []
    in_group = False
    i = 0
    n = len(glob)
    while i < n:
        c = glob[i]
        i += 1
        if c == "\\":
            if i == n:
                raise PatternError(glob, "no character to escape")
            out.append(re.escape(glob[i]))
            i += 1
        elif c == "/":
            out.append("/")
        elif c == "[":
            i = _translate_class(glob, i, out)
        elif c == "{":
            if in_group:
                raise PatternError(glob, "cannot nest groups")
            out.append("(?:(?:")
            in_group = True
        elif c == "}":
            if in_group:
                out.append("))")
                in_group = False
            else:
                out.append("\\}")
        elif c == ",":
            out.append(")|(?:" if in_group else ",")
        elif c == "*":
            if i < n and glob[i] == "*":
                out.append(".*")
                i += 1
            else:
                out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c in _REGEX_META:
            out.append("\\" + c)
        else:
            out.append(c)
    if in_group:
        raise PatternError(glob, "missing '}'")
    return "".join(out)


def _translate_class(glob: str, i: int, out: list[str]) -> int:
    """Translate the bracket expression starting after ``[`` at index *i*.

    Appends the regex class to *out* and returns the index after ``]``.
    """
    n = len(glob)
    parts = ["[^/"] if i < n and glob[i] == "!" else ["["]
    negate = parts[0] == "[^/"
    if negate:
        i += 1
    elif i < n and glob[i] == "-":
        # leading '-' is literal
        parts.append("\\-")
        i += 1
    first = True
    while i < n:
        c = glob[i]
        if c == "]" and not first:
            break
        first = False
        i += 1
        if c == "/":
            raise PatternError(glob, "explicit path separator in character class")
        if c == "\\":
            if i == n:
                raise PatternError(glob, "no character to escape")
            c = glob[i]
            i += 1
        if c == "-" and i < n and glob[i] != "]" and len(parts) > 1:
            hi = glob[i]
            i += 1
            if hi == "\\":
                if i == n:
                    raise PatternError(glob, "no character to escape")
                hi = glob[i]
                i += 1
            if hi == "/":
                raise PatternError(glob, "explicit path separator in character class")
            parts.append("-" + re.escape(hi))
            continue
        parts.append(re.escape(c))
    if i >= n:
        raise PatternError(glob, "missing ']'")
    if not negate:
        # '/' is excluded from every class
        out.append("(?!/)")
    out.append("".join(parts) + "]")
    return i + 1


def _to_posix(path: str | os.PathLike[str]) -> str:
    if isinstance(path, PurePath):
        return path.as_posix()
    return os.fspath(path).replace(os.sep, "/")


@dataclass(frozen=True)
class Matcher:
    """A compiled include/exclude pattern.

    Attributes:
        pattern: The pattern with its explicit syntax prefix.
        syntax: ``"glob"`` or ``"regex"``.
    """
    pattern: str
    syntax: str
    _regex: re.Pattern = field(repr=False, compare=False)

    def matches(self, path: str | os.PathLike[str]) -> bool:
        """True if the whole relative *path* matches this pattern."""
        return self._regex.fullmatch(_to_posix(path)) is not None

    def __str__(self) -> str:
        return self.pattern


def compile_pattern(pattern: str) -> Matcher:
    """Compile a single pattern; ``glob`` is assumed when no prefix is given."""
    full = with_default_syntax(pattern)
    if full.startswith(REGEX_PREFIX):
        body = full[len(REGEX_PREFIX):]
        try:
            regex = re.compile(body)
        except re.error as exc:
            raise PatternError(pattern, str(exc)) from exc
        return Matcher(full, "regex", regex)
    body = full[len(GLOB_PREFIX):]
    translated = glob_to_regex(body)
    try:
        regex = re.compile(translated)
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc
    return Matcher(full, "glob", regex)


def parse_pattern_list(raw: Iterable[str] | None) -> list[Matcher]:
    """Compile a raw pattern list in order, skipping blanks and ``#`` comments."""
    result: list[Matcher] = []
    for line in raw or ():
        if line is None or not line.strip():
            continue
        line = line.lstrip()
        if line.startswith("#"):
            continue
        result.append(compile_pattern(line))
    return result


def read_pattern_file(path: str | os.PathLike[str]) -> list[str]:
    """Read raw pattern lines from a file (one pattern per line)."""
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\r\n") for line in f]


def always_ignored() -> list[Matcher]:
    """Compiled matchers for :data:`ALWAYS_IGNORED`."""
    return parse_pattern_list(ALWAYS_IGNORED)
