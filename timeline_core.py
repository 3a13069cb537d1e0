from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

import pandas as pd
from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


DEFAULT_COLOR = "#3b82f6"
DEFAULT_BAR_HEIGHT = 24
DISPLAY_DATE_FORMAT = "%x"
YOUTUBE_EMBED_BASE = "https://www.youtube.com/embed/"

_BARE_YEAR = re.compile(r"^-?[0-9]{1,4}$")
_YEARLESS_DEFAULTS = (datetime(1, 1, 1), datetime(2, 2, 2))
RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})
_VIDEO_LINK = re.compile(r"^.*(youtu.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")

# Column aliases accepted by TimelineEvent.from_record, first match wins.
RECORD_FIELDS: dict[str, tuple[str, ...]] = {
    "event_id": ("event_id", "id", "ID"),
    "title": ("title", "Title", "Títol"),
    "description": ("description", "Description", "Descripció"),
    "start_date": ("start_date", "startDate", "Start", "Inici"),
    "end_date": ("end_date", "endDate", "End", "Final"),
    "media_url": ("media_url", "mediaUrl", "Media", "Mitjà"),
    "color": ("color", "Color"),
}

TextMode = Literal["full", "compact", "hidden"]


@dataclass(frozen=True)
class TimelineEvent:
    event_id: str
    title: str
    description: str
    start_date: str
    end_date: str | None = None
    media_url: str | None = None
    color: str = DEFAULT_COLOR

    @property
    def has_end(self) -> bool:
        return bool(self.end_date)

    @staticmethod
    def from_record(record: Mapping[str, object], index: int = 0) -> "TimelineEvent":
        """Build an event from a loosely typed row (dict, pandas Series).

        Empty / NaN cells count as missing. A missing id becomes
        ``event-<index>`` and a missing color falls back to DEFAULT_COLOR.
        """

        def pick(field_name: str) -> str | None:
            for key in RECORD_FIELDS[field_name]:
                if key in record:
                    value = _clean_cell(record[key])
                    if value is not None:
                        return value
            return None

        if not any(key in record for key in RECORD_FIELDS["start_date"]):
            raise ValueError(f"Record {index} has no start date column")

        return TimelineEvent(
            event_id=pick("event_id") or f"event-{index}",
            title=pick("title") or "",
            description=pick("description") or "",
            start_date=pick("start_date") or "",
            end_date=pick("end_date"),
            media_url=pick("media_url"),
            color=pick("color") or DEFAULT_COLOR,
        )


class TimelineConfig(BaseModel):
    """Layout-relevant settings.

    Presentation-only settings from a saved document (theme, darkMode, font,
    showMedia, language) are accepted and dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    orientation: Literal["horizontal", "vertical"] = "horizontal"
    scale: Literal["proportional", "compressed"] = "compressed"
    scroll_mode: bool = False
    bar_height: int = Field(default=DEFAULT_BAR_HEIGHT, gt=0)
    text_mode_range: TextMode = "full"
    text_mode_point: TextMode = "full"

    @field_validator("bar_height", mode="before")
    @classmethod
    def _default_bar_height(cls, value: object) -> object:
        # 0 / empty means "not set" in saved documents
        if value is None or value == 0 or value == "":
            return DEFAULT_BAR_HEIGHT
        return value

    @property
    def is_horizontal(self) -> bool:
        return self.orientation == "horizontal"

    @property
    def is_proportional(self) -> bool:
        return self.scale == "proportional"


@dataclass(frozen=True)
class ResolvedEvent:
    event: TimelineEvent
    start: float
    end: float
    resolved: bool = True


# -------------------------
# Date resolution
# -------------------------
def _clean_cell(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if pd.isna(value):
            return None
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (pd.Timestamp, datetime)):
        if pd.isna(value):
            return None
        return value.strftime("%Y-%m-%d")
    text = str(value).strip()
    return text or None


def _parse_calendar_date(raw: str) -> datetime | None:
    # relative words read the wall clock; a leading minus would be dropped;
    # non-ASCII digits are not dates
    if not raw.isascii() or raw.startswith("-") or raw.lower() in RELATIVE_DATE_WORDS:
        return None
    try:
        parsed = date_parser.parse(raw, default=_YEARLESS_DEFAULTS[0])
        if date_parser.parse(raw, default=_YEARLESS_DEFAULTS[1]).year != parsed.year:
            # no explicit year in the input
            return None
    except (ValueError, OverflowError):
        return None
    ts = pd.to_datetime(raw, errors="coerce")
    if pd.isna(ts):
        # pandas timestamps stop at 1677/2262; keep the dateutil result
        return parsed
    try:
        return ts.to_pydatetime()
    except (ValueError, OverflowError):
        return None


def is_bare_year(raw: str) -> bool:
    return bool(_BARE_YEAR.match(raw))


def _resolve(raw: str | None) -> tuple[float, bool]:
    if not raw:
        return 0, False
    raw = raw.strip()
    if is_bare_year(raw):
        return int(raw), True
    parsed = _parse_calendar_date(raw)
    if parsed is None:
        return 0, False
    return parsed.year + (parsed.month - 1) / 12 + parsed.day / 365, True


def is_resolvable(raw: str | None) -> bool:
    return _resolve(raw)[1]


def resolve_date(raw: str | None) -> float:
    """Map a flexible date string onto a continuous year coordinate.

    ``"1492"`` -> ``1492``; ``"2024-06-15"`` -> ``2024 + 5/12 + 15/365``.
    Empty or unparseable input maps to ``0``.
    """
    return _resolve(raw)[0]


def format_display_date(raw: str | None, fmt: str = DISPLAY_DATE_FORMAT) -> str:
    if not raw:
        return ""
    text = raw.strip()
    if is_bare_year(text):
        return raw
    parsed = _parse_calendar_date(text)
    if parsed is None:
        return raw
    try:
        return parsed.strftime(fmt)
    except ValueError:
        return raw


def extract_embed_url(url: str | None) -> str | None:
    """Return a YouTube embed URL for video links, None for anything else."""
    if not url:
        return None
    match = _VIDEO_LINK.match(url)
    if match and len(match.group(2)) == 11:
        return f"{YOUTUBE_EMBED_BASE}{match.group(2)}"
    return None


def resolve_event(event: TimelineEvent) -> ResolvedEvent:
    start, resolved = _resolve(event.start_date)
    if not resolved:
        logger.warning(f"Event {event.event_id!r}: unparseable start date {event.start_date!r}, using 0")
    end = resolve_date(event.end_date) if event.has_end else start
    if end < start:
        logger.warning(
            f"Event {event.event_id!r}: end {event.end_date!r} precedes start {event.start_date!r}, clamping"
        )
        end = start
    return ResolvedEvent(event=event, start=start, end=end, resolved=resolved)


def resolve_events(events: Iterable[TimelineEvent]) -> list[ResolvedEvent]:
    """Resolve every event once and sort ascending by start coordinate.

    The sort is stable, so events sharing a coordinate keep their input
    order. Every allocator iterates in this order.
    """
    return sorted((resolve_event(e) for e in events), key=lambda r: r.start)


def events_from_records(records: Iterable[Mapping[str, object]]) -> list[TimelineEvent]:
    return [TimelineEvent.from_record(record, index) for index, record in enumerate(records)]
