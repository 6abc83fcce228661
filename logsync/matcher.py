"""Single-line predicates for the incremental search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

import regex

logger = logging.getLogger(__name__)

DEFAULT_REGEX_TIMEOUT = 1.0


@dataclass(frozen=True)
class SearchOptions:
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False


def _never(_: str) -> bool:
    return False


def _is_word_char(char: str) -> bool:
    return char.isalnum()


def find_whole_word(line: str, needle: str, *, case_sensitive: bool) -> bool:
    """True when *needle* occurs in *line* with no alphanumeric neighbours."""

    haystack = line if case_sensitive else line.casefold()
    target = needle if case_sensitive else needle.casefold()
    start = haystack.find(target)
    while start != -1:
        end = start + len(target)
        before_ok = start == 0 or not _is_word_char(haystack[start - 1])
        after_ok = end >= len(haystack) or not _is_word_char(haystack[end])
        if before_ok and after_ok:
            return True
        start = haystack.find(target, start + 1)
    return False


@dataclass
class LineMatcher:
    """Compiled ``(query, options)`` pair. Call it with a line to test it."""

    query: str
    options: SearchOptions = field(default_factory=SearchOptions)
    timeout: float = DEFAULT_REGEX_TIMEOUT
    error: Optional[str] = None
    _predicate: Callable[[str], bool] = field(default=_never, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.query

    def __call__(self, line: str) -> bool:
        return self._predicate(line)


def _regex_predicate(pattern: "regex.Pattern[str]", timeout: float) -> Callable[[str], bool]:
    def predicate(line: str) -> bool:
        try:
            return pattern.search(line, timeout=timeout) is not None
        except TimeoutError:
            logger.debug("Regex %r timed out on a %d character line", pattern.pattern, len(line))
            return False

    return predicate


def compile_matcher(
    query: str,
    case_sensitive: bool = False,
    whole_word: bool = False,
    use_regex: bool = False,
    *,
    timeout: float = DEFAULT_REGEX_TIMEOUT,
) -> LineMatcher:
    """Build a line predicate. Bad patterns produce a matcher that never matches."""

    options = SearchOptions(case_sensitive, whole_word, use_regex)
    matcher = LineMatcher(query=query, options=options, timeout=timeout)
    if not query:
        return matcher

    if use_regex:
        source = rf"\b(?:{query})\b" if whole_word else query
        flags = regex.VERSION0
        if not case_sensitive:
            flags |= regex.IGNORECASE
        try:
            pattern = regex.compile(source, flags)
        except regex.error as exc:
            matcher.error = f"Invalid pattern: {exc}"
            return matcher
        matcher._predicate = _regex_predicate(pattern, timeout)
        return matcher

    if whole_word:
        matcher._predicate = lambda line: find_whole_word(line, query, case_sensitive=case_sensitive)
    elif case_sensitive:
        matcher._predicate = lambda line: query in line
    else:
        folded = query.casefold()
        matcher._predicate = lambda line: folded in line.casefold()
    return matcher
