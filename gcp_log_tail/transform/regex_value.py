# gcp_log_tail/transform/regex_value.py

"""Regex capture-and-substitute values, e.g. ``resource-$1-$2``."""

from functools import lru_cache
import re

# Only $1..$9 are substituted.
MAX_GROUPS = 9


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def regex_value(source: str, pattern: str, template: str) -> str:
    """Derive a value from ``source`` by filling ``template`` with capture groups.

    When ``pattern`` does not match, ``template`` is returned unchanged,
    placeholders included.
    """
    regex = compile_pattern(pattern)
    m = regex.search(source)
    if m is None:
        return template

    result = template
    for i in range(1, min(MAX_GROUPS, regex.groups) + 1):
        result = result.replace(f"${i}", m.group(i) or "")
    return result
