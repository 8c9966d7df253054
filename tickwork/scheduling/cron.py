"""Five-field cron expression parsing and next-date search.

Provides:
- CronField: parsed constraint for one field (wildcard or value set)
- CronExpression: immutable five-slot expression with next-date search
- parse_cron: convenience constructor

Supported syntax per field: ``*`` (or ``?``), ``n``, ``a,b,c``, ``a-b``,
``*/n``, ``a-b/n`` and ``a/n`` (just ``a``). Evaluation is always done in UTC.

Usage:
    from tickwork.scheduling.cron import CronExpression

    cron = CronExpression("0 9-17 * * 1-5")  # weekdays, 9:00 to 17:00
    next_run = cron.get_next_date(datetime(2024, 1, 1, tzinfo=timezone.utc))
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import FrozenSet, Optional, Set, Tuple

from tickwork.utils.exceptions import ParseError

ONE_MINUTE = timedelta(minutes=1)

# Search at least this far ahead before reporting "not found"
DEFAULT_SEARCH_YEARS = 4

WILDCARDS = ("*", "?")


@dataclass(frozen=True)
class FieldSpec:
    """Name and inclusive bounds of one cron field."""

    name: str
    minimum: int
    maximum: int


FIELD_SPECS: Tuple[FieldSpec, ...] = (
    FieldSpec("minute", 0, 59),
    FieldSpec("hour", 0, 23),
    FieldSpec("day_of_month", 1, 31),
    FieldSpec("month", 1, 12),
    FieldSpec("day_of_week", 0, 6),
)


@dataclass(frozen=True)
class CronField:
    """Parsed constraint for a single cron field.

    Attributes:
        name: Field name (minute, hour, day_of_month, month, day_of_week)
        values: Allowed values, or None when the field is unconstrained
    """

    name: str
    values: Optional[FrozenSet[int]] = None

    @property
    def is_wildcard(self) -> bool:
        return self.values is None

    def matches(self, value: int) -> bool:
        return self.values is None or value in self.values


def _parse_number(text: str, spec: FieldSpec, raw: str) -> int:
    if not text.isascii() or not text.isdigit():
        raise ParseError("expected a number", field=spec.name, value=raw)
    return int(text)


def _parse_segment(segment: str, spec: FieldSpec, raw: str) -> Set[int]:
    """Parse one comma-separated item of a field into its values."""
    base, sep, step_text = segment.partition("/")
    step = 1
    if sep:
        step = _parse_number(step_text, spec, raw)
        if step <= 0:
            raise ParseError("step must be positive", field=spec.name, value=raw)

    if base in WILDCARDS:
        start, end = spec.minimum, spec.maximum
    elif "-" in base:
        start_text, _, end_text = base.partition("-")
        start = _parse_number(start_text, spec, raw)
        end = _parse_number(end_text, spec, raw)
        if start > end:
            raise ParseError(
                "range start is greater than end", field=spec.name, value=raw
            )
    else:
        start = end = _parse_number(base, spec, raw)

    if start < spec.minimum or end > spec.maximum:
        raise ParseError(
            f"values must be within {spec.minimum}-{spec.maximum}",
            field=spec.name,
            value=raw,
        )

    return set(range(start, end + 1, step))


def parse_field(raw: str, spec: FieldSpec) -> CronField:
    """Parse the text of one field into a CronField.

    Args:
        raw: Field text, e.g. ``"*/15"`` or ``"1,15,30-35"``
        spec: Field name and bounds

    Returns:
        Parsed CronField

    Raises:
        ParseError: If the field is malformed or out of range
    """
    if raw in WILDCARDS:
        return CronField(spec.name)

    values: Set[int] = set()
    for segment in raw.split(","):
        if not segment:
            raise ParseError("empty list item", field=spec.name, value=raw)
        values |= _parse_segment(segment, spec, raw)

    return CronField(spec.name, frozenset(values))


def _to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class CronExpression:
    """Immutable, parsed five-field cron expression.

    Day-of-month and day-of-week follow cron's traditional OR rule: when
    both are constrained a day matches if either matches; when one is a
    wildcard only the other one is checked.

    Attributes:
        source: The expression text as given
    """

    __slots__ = ("_source", "_fields", "_search_window")

    def __init__(self, expression: str, search_years: int = DEFAULT_SEARCH_YEARS):
        """Parse a cron expression.

        Args:
            expression: Five whitespace-separated fields
                (minute hour day-of-month month day-of-week)
            search_years: How far ahead get_next_date searches before
                giving up

        Raises:
            ParseError: If the expression is malformed
        """
        if search_years < 1:
            raise ValueError("search_years must be at least 1")

        parts = expression.split()
        if len(parts) != len(FIELD_SPECS):
            raise ParseError(
                f"Cron expression must have {len(FIELD_SPECS)} fields, "
                f"got {len(parts)}: {expression!r}"
            )

        self._source = expression.strip()
        self._fields = tuple(
            parse_field(part, spec) for part, spec in zip(parts, FIELD_SPECS)
        )
        self._search_window = timedelta(days=366 * search_years + 1)

    @property
    def source(self) -> str:
        return self._source

    @property
    def fields(self) -> Tuple[CronField, ...]:
        return self._fields

    @property
    def minute(self) -> CronField:
        return self._fields[0]

    @property
    def hour(self) -> CronField:
        return self._fields[1]

    @property
    def day_of_month(self) -> CronField:
        return self._fields[2]

    @property
    def month(self) -> CronField:
        return self._fields[3]

    @property
    def day_of_week(self) -> CronField:
        return self._fields[4]

    def _matches_day(self, day: date) -> bool:
        if not self.month.matches(day.month):
            return False

        # Python counts Monday as 0; cron counts Sunday as 0
        weekday = day.isoweekday() % 7
        dom, dow = self.day_of_month, self.day_of_week
        if dom.is_wildcard or dow.is_wildcard:
            return dom.matches(day.day) and dow.matches(weekday)
        return dom.matches(day.day) or dow.matches(weekday)

    def matches(self, moment: datetime) -> bool:
        """Check whether a timestamp (minute resolution) satisfies every field."""
        moment = _to_utc(moment)
        return (
            self.minute.matches(moment.minute)
            and self.hour.matches(moment.hour)
            and self._matches_day(moment.date())
        )

    def get_next_date(self, from_time: Optional[datetime] = None) -> Optional[datetime]:
        """Find the next matching timestamp strictly after ``from_time``.

        Candidates advance one minute at a time from the minute after
        ``from_time``. Minutes inside a non-matching day or hour are
        skipped in one step since none of them can match.

        Args:
            from_time: Reference time (default: now). Naive values are
                treated as UTC.

        Returns:
            Timezone-aware UTC datetime truncated to the minute, or None
            if nothing matches within the search window
        """
        if from_time is None:
            from_time = datetime.now(timezone.utc)

        start = _to_utc(from_time).replace(second=0, microsecond=0)
        candidate = start + ONE_MINUTE
        deadline = start + self._search_window

        while candidate <= deadline:
            if not self._matches_day(candidate.date()):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if not self.hour.matches(candidate.hour):
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if self.minute.matches(candidate.minute):
                return candidate
            candidate += ONE_MINUTE

        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CronExpression):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return hash(self._fields)

    def __str__(self) -> str:
        return self._source

    def __repr__(self) -> str:
        return f"CronExpression({self._source!r})"


def parse_cron(expression: str, search_years: int = DEFAULT_SEARCH_YEARS) -> CronExpression:
    """Parse a cron expression.

    Convenience function, equivalent to ``CronExpression(expression)``.
    """
    return CronExpression(expression, search_years=search_years)
