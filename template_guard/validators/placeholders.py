"""
Placeholder scanning for template text.

Templates mark substitution points with numbered placeholders such as
``{{1}}``. These helpers extract the numbers, find malformed tokens
(``{{name}}``, ``{{ 1 }}``) and answer the sequencing questions asked by
both the structural schema and the rule engine.
"""

import re
from collections import Counter
from typing import Iterable, List

# ASCII digits only; unicode digits are not valid placeholder numbers
VARIABLE_PATTERN = re.compile(r"\{\{([0-9]+)\}\}")
PLACEHOLDER_PATTERN = re.compile(r"\{\{[^}]*\}\}")


def find_variables(text: str) -> List[int]:
    """Return placeholder numbers in order of appearance."""
    return [int(match.group(1)) for match in VARIABLE_PATTERN.finditer(text)]


def find_malformed_placeholders(text: str) -> List[str]:
    """Return ``{{...}}`` tokens that are not a plain ``{{n}}``."""
    return [
        token for token in PLACEHOLDER_PATTERN.findall(text)
        if not VARIABLE_PATTERN.fullmatch(token)
    ]


def is_sequential(numbers: Iterable[int]) -> bool:
    """
    Check that the distinct placeholder numbers are exactly ``1..k``.

    An empty collection is sequential.
    """
    distinct = sorted(set(numbers))
    return distinct == list(range(1, len(distinct) + 1))


def find_duplicates(numbers: Iterable[int]) -> List[int]:
    """Return placeholder numbers used more than once, ascending."""
    counts = Counter(numbers)
    return sorted(number for number, count in counts.items() if count > 1)


def format_variables(numbers: Iterable[int]) -> str:
    """Render distinct numbers ascending, e.g. ``{{1}}, {{3}}``."""
    return ", ".join(f"{{{{{number}}}}}" for number in sorted(set(numbers)))


def count_variables(text: str) -> int:
    """Count every well-formed placeholder occurrence."""
    return len(VARIABLE_PATTERN.findall(text))
