import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from rules.errors import (
    InvalidDateError,
    MixedCombinatorError,
    NotImplementedFilterError,
    RulesSyntaxError,
    SemanticError,
)


class Combinator(Enum):
    AND = "and"
    OR = "or"


class Field(Enum):
    FROM = "from"
    TO = "to"
    CC = "cc"
    TO_OR_CC = "to-or-cc"
    ALL_ADDRESSES = "all-addresses"
    SUBJECT = "subject"
    BODY = "body"
    DATE = "date"
    JUNK_STATUS = "junk-status"


class Comparator(Enum):
    CONTAINS = "contains"
    DOESNT_CONTAIN = "doesn't contain"
    BEGINS_WITH = "begins with"
    ENDS_WITH = "ends with"
    IS = "is"
    ISNT = "isn't"
    IS_BEFORE = "is before"


COMBINATOR_NAMES: Dict[str, Combinator] = {c.value: c for c in Combinator}

FIELD_NAMES: Dict[str, Field] = {f.value: f for f in Field}
# Spellings written by the mail client itself
FIELD_NAMES.update(
    {
        "to or cc": Field.TO_OR_CC,
        "all addresses": Field.ALL_ADDRESSES,
        "junk status": Field.JUNK_STATUS,
    }
)

COMPARATOR_NAMES: Dict[str, Comparator] = {c.value: c for c in Comparator}

DATE_PATTERN = re.compile(r"^(?P<day>\d{1,2})-(?P<month>[A-Za-z]{3})-(?P<year>\d{4})$")
# Month names are always English in the rules file, whatever the host locale
MONTHS = {
    name: number
    for number, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}
QUERY_DATE_FORMAT = "{:04d}/{:02d}/{:02d}"
# Comparators rendered as a plain Gmail term; Gmail search has no prefix/suffix/exact matching
TERM_COMPARATORS = (
    Comparator.CONTAINS,
    Comparator.BEGINS_WITH,
    Comparator.ENDS_WITH,
    Comparator.IS,
)


def _alternation(names) -> str:
    return "|".join(re.escape(name) for name in sorted(names, key=len, reverse=True))


_FLAGS = re.IGNORECASE | re.DOTALL
COMBINATOR_PATTERN = re.compile(
    r"^(?P<name>" + _alternation(COMBINATOR_NAMES) + r")\s*\(\s*(?P<rest>.+)$", _FLAGS
)
FIELD_PATTERN = re.compile(
    r"^(?:(?P<name>"
    + _alternation(FIELD_NAMES)
    + r')|"(?P<header>[^"]*)")\s*,\s*(?P<rest>.+)$',
    _FLAGS,
)
COMPARATOR_PATTERN = re.compile(
    r"^(?P<name>" + _alternation(COMPARATOR_NAMES) + r")\s*,(?P<rest>.+)$", _FLAGS
)
QUOTED_SEARCH_PATTERN = re.compile(r'^"(?P<search>[^"]*)"\s*\)(?P<rest>.*)$', _FLAGS)
RAW_SEARCH_PATTERN = re.compile(r"^(?P<search>[^)]*)\)(?P<rest>.*)$", _FLAGS)


def parse_date(value: str) -> Optional[date]:
    """Parse a ``day-Mon-year`` date such as ``01-Jan-2024``; None when it isn't one."""
    match = DATE_PATTERN.match(value.strip())
    if not match:
        return None
    month = MONTHS.get(match.group("month").lower())
    if month is None:
        return None
    try:
        return date(int(match.group("year")), month, int(match.group("day")))
    except ValueError:
        return None


@dataclass(frozen=True)
class Condition:
    combinator: Combinator
    # A Field member, or the name of a custom header
    field: Union[Field, str]
    comparator: Comparator
    search: str

    @property
    def field_name(self) -> str:
        if isinstance(self.field, Field):
            return self.field.value
        return f'"{self.field}"'

    def __str__(self) -> str:
        return (
            f"[{self.combinator.value}] {self.field_name} "
            f'{self.comparator.value} "{self.search}"'
        )

    def to_query(self) -> str:
        """Render this condition as a Gmail search fragment."""
        if self.field == Field.FROM:
            return self._build_term("from")
        if self.field == Field.TO:
            return self._build_term("to")
        if self.field == Field.CC:
            return self._build_term("cc")
        if self.field == Field.TO_OR_CC:
            return self._build_group(["to", "cc"])
        if self.field == Field.ALL_ADDRESSES:
            return self._build_group(["from", "to", "cc", "bcc"])
        if self.field == Field.SUBJECT:
            return self._build_term("subject")
        if self.field == Field.BODY:
            return self._build_term("")
        if self.field == Field.DATE:
            return self._build_date()
        raise NotImplementedFilterError(f"Not implemented: {self.field_name}")

    def _term(self, key: str) -> str:
        search = self.search.replace('"', "")
        if not key:
            return f'"{search}"'
        return f'{key}:"{search}"'

    def _check_comparator(self):
        if self.comparator not in TERM_COMPARATORS + (Comparator.DOESNT_CONTAIN,):
            raise NotImplementedFilterError(
                f"Not implemented: {self.field_name} {self.comparator.value}"
            )

    def _build_term(self, key: str) -> str:
        self._check_comparator()
        if self.comparator == Comparator.DOESNT_CONTAIN:
            return f"-({self._term(key)})"
        return self._term(key)

    def _build_group(self, keys: List[str]) -> str:
        return "(" + " OR ".join(self._build_term(key) for key in keys) + ")"

    def _build_date(self) -> str:
        before = parse_date(self.search)
        if before is None:
            raise InvalidDateError(f"'{self.search}' is not a valid date")
        if self.comparator != Comparator.IS_BEFORE:
            raise NotImplementedFilterError(
                f"Not implemented: {self.field_name} {self.comparator.value}"
            )
        return "before:" + QUERY_DATE_FORMAT.format(before.year, before.month, before.day)


class ConditionGroup:
    """Conditions of a single rule; all of them share the same combinator."""

    def __init__(self, conditions: Optional[List[Condition]] = None):
        self._conditions: List[Condition] = []
        self._frozen = False
        for condition in conditions or []:
            self.add(condition)

    @property
    def combinator(self) -> Optional[Combinator]:
        if not self._conditions:
            return None
        return self._conditions[0].combinator

    @property
    def conditions(self) -> List[Condition]:
        return list(self._conditions)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self):
        self._frozen = True

    def add(self, condition: Condition):
        if self._frozen:
            raise SemanticError("Conditions can't be changed once parsed")
        if self._conditions and condition.combinator != self.combinator:
            raise MixedCombinatorError()
        self._conditions.append(condition)

    def extend(self, conditions: List[Condition]):
        for condition in conditions:
            self.add(condition)

    def is_empty(self) -> bool:
        return not self._conditions

    def __iter__(self) -> Iterator[Condition]:
        return iter(self._conditions)

    def __len__(self) -> int:
        return len(self._conditions)

    def to_query(self) -> str:
        """Join the conditions into one Gmail query; AND is implicit, OR is spelled out."""
        chunks = []
        for condition in self._conditions:
            if chunks and condition.combinator == Combinator.OR:
                chunks.append("OR")
            chunks.append(condition.to_query())
        return " ".join(chunks)


def _extract_combinator(text: str) -> Optional[Tuple[Combinator, str]]:
    match = COMBINATOR_PATTERN.match(text)
    if not match:
        return None
    return COMBINATOR_NAMES[match.group("name").lower()], match.group("rest").strip()


def _extract_field(text: str) -> Optional[Tuple[Union[Field, str], str]]:
    match = FIELD_PATTERN.match(text)
    if not match:
        return None
    if match.group("name") is not None:
        field = FIELD_NAMES[match.group("name").lower()]
    else:
        field = match.group("header")
    return field, match.group("rest").strip()


def _extract_comparator(text: str) -> Optional[Tuple[Comparator, str]]:
    match = COMPARATOR_PATTERN.match(text)
    if not match:
        return None
    return COMPARATOR_NAMES[match.group("name").lower()], match.group("rest").strip()


def _extract_search(text: str) -> Optional[Tuple[str, str]]:
    pattern = QUOTED_SEARCH_PATTERN if text.startswith('"') else RAW_SEARCH_PATTERN
    match = pattern.match(text)
    if not match:
        return None
    return match.group("search"), match.group("rest").strip()


def parse_conditions(value: str) -> List[Condition]:
    """Parse a condition string such as ``AND (to,contains,someone@example.com)``.

    Clauses follow each other without separator and are returned in source
    order. Raises RulesSyntaxError quoting the whole input on any failure.
    """
    conditions = []
    remaining = value.strip()
    while remaining:
        parts = []
        for extract in (
            _extract_combinator,
            _extract_field,
            _extract_comparator,
            _extract_search,
        ):
            extracted = extract(remaining)
            if extracted is None:
                raise RulesSyntaxError(f"Invalid condition string: {value}")
            part, remaining = extracted
            parts.append(part)
        conditions.append(Condition(*parts))

    if not conditions:
        raise RulesSyntaxError(f"Invalid condition string: {value}")
    return conditions
