"""Tests for date resolution, embed detection and the input records."""

import logging

import pandas as pd
import pytest
from pydantic import ValidationError

from timeline_core import (
    DEFAULT_COLOR,
    TimelineConfig,
    TimelineEvent,
    events_from_records,
    extract_embed_url,
    format_display_date,
    is_resolvable,
    resolve_date,
    resolve_event,
    resolve_events,
)


def _event(event_id, start, end=None):
    return TimelineEvent(event_id=event_id, title=event_id, description="", start_date=start, end_date=end)


# ------------------------------------------------------------------ #
#  resolve_date                                                        #
# ------------------------------------------------------------------ #


def test_bare_year_is_exact():
    """A bare year resolves to exactly that integer."""
    assert resolve_date("1492") == 1492
    assert isinstance(resolve_date("1492"), int)


@pytest.mark.parametrize("raw, expected", [("7", 7), ("-44", -44), ("0", 0), (" 1999 ", 1999)])
def test_short_and_negative_years(raw, expected):
    assert resolve_date(raw) == expected


def test_empty_resolves_to_zero():
    """Empty and missing input fall back to 0."""
    assert resolve_date("") == 0
    assert resolve_date(None) == 0


def test_unparseable_resolves_to_zero():
    assert resolve_date("hello world") == 0
    assert not is_resolvable("hello world")


def test_calendar_date_is_fractional_year():
    """Months are zero-based twelfths, days are 365ths."""
    assert resolve_date("2024-06-15") == pytest.approx(2024 + 5 / 12 + 15 / 365)


def test_calendar_dates_keep_sub_year_order():
    assert resolve_date("2024-01-31") < resolve_date("2024-02-01") < resolve_date("2024-12-01")


def test_historical_date_outside_timestamp_range():
    """Dates pandas cannot hold as nanosecond timestamps still resolve."""
    assert resolve_date("1066-10-14") == pytest.approx(1066 + 9 / 12 + 14 / 365)
    assert is_resolvable("1066-10-14")


def test_year_zero_falls_back_instead_of_raising():
    """Year 0 has no datetime representation; it degrades to the fallback."""
    assert resolve_date("0000-01-01") == 0
    assert not is_resolvable("0000-01-01")
    assert format_display_date("0000-01-01") == "0000-01-01"


@pytest.mark.parametrize("raw", ["now", "today", "Today", "tomorrow", "yesterday"])
def test_relative_words_do_not_read_the_clock(raw):
    assert resolve_date(raw) == 0
    assert format_display_date(raw) == raw


@pytest.mark.parametrize("raw", ["June", "Mon", "June 5"])
def test_dates_without_a_year_are_unparseable(raw):
    assert resolve_date(raw) == 0
    assert not is_resolvable(raw)


def test_signed_calendar_date_is_not_mirrored_to_positive():
    """A leading minus is never dropped to give a CE coordinate."""
    assert resolve_date("-500-01-01") == 0
    assert not is_resolvable("-500-01-01")


def test_bare_year_requires_ascii_digits():
    assert resolve_date("۲۰۲۴") == 0
    assert format_display_date("۲۰۲۴") == "۲۰۲۴"


# ------------------------------------------------------------------ #
#  format_display_date                                                 #
# ------------------------------------------------------------------ #


def test_format_passes_bare_years_through():
    assert format_display_date("1492") == "1492"
    assert format_display_date("-300") == "-300"


def test_format_empty_is_empty():
    assert format_display_date("") == ""
    assert format_display_date(None) == ""


def test_format_calendar_date():
    assert format_display_date("2024-06-15", fmt="%Y-%m-%d") == "2024-06-15"
    assert format_display_date("2024-06-15") != ""


def test_format_failure_returns_raw_input():
    """Unparseable input comes back unchanged instead of raising."""
    assert format_display_date("sometime in spring") == "sometime in spring"


# ------------------------------------------------------------------ #
#  extract_embed_url                                                   #
# ------------------------------------------------------------------ #


@pytest.mark.parametrize(
    "url",
    [
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
    ],
)
def test_video_links_give_embed_url(url):
    assert extract_embed_url(url) == "https://www.youtube.com/embed/dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/picture.jpg",
        "https://www.youtube.com/embed/short",
        "",
        None,
    ],
)
def test_other_links_give_none(url):
    """Anything without an 11-character video id is treated as an image."""
    assert extract_embed_url(url) is None


# ------------------------------------------------------------------ #
#  Records and resolution                                              #
# ------------------------------------------------------------------ #


def test_from_record_english_columns():
    event = TimelineEvent.from_record(
        {"Title": "Moon landing", "Description": "Apollo 11", "Start": "1969-07-20", "Color": "#000"},
        index=3,
    )
    assert event.event_id == "event-3"
    assert event.title == "Moon landing"
    assert event.start_date == "1969-07-20"
    assert event.end_date is None
    assert event.color == "#000"


def test_from_record_pandas_row_with_catalan_columns():
    """Spreadsheet rows: numeric years and NaN cells are cleaned."""
    row = pd.Series({"Títol": "Descobriment", "Inici": 1492.0, "Final": float("nan"), "Mitjà": ""})
    event = TimelineEvent.from_record(row)
    assert event.title == "Descobriment"
    assert event.start_date == "1492"
    assert event.end_date is None
    assert event.media_url is None
    assert event.color == DEFAULT_COLOR


def test_from_record_timestamp_cell():
    event = TimelineEvent.from_record({"startDate": pd.Timestamp("2001-09-11"), "id": "x"})
    assert event.event_id == "x"
    assert event.start_date == "2001-09-11"


def test_from_record_without_start_column_raises():
    with pytest.raises(ValueError):
        TimelineEvent.from_record({"Title": "No dates"})


def test_events_from_records_numbers_ids():
    events = events_from_records([{"Start": "1900"}, {"Start": "1950", "End": "1960"}])
    assert [e.event_id for e in events] == ["event-0", "event-1"]
    assert events[1].has_end


def test_resolve_events_sorts_stably():
    """Sorted ascending by start; ties keep input order."""
    events = [_event("c", "1950"), _event("a", "1900"), _event("b", "1950")]
    assert [r.event.event_id for r in resolve_events(events)] == ["a", "c", "b"]


def test_point_event_end_defaults_to_start():
    resolved = resolve_event(_event("p", "1900"))
    assert resolved.end == resolved.start == 1900


def test_end_before_start_is_clamped(caplog):
    with caplog.at_level(logging.WARNING, logger="timeline_core"):
        resolved = resolve_event(_event("r", "1950", "1900"))
    assert resolved.end == resolved.start == 1950
    assert "precedes" in caplog.text


def test_unparseable_start_is_flagged(caplog):
    with caplog.at_level(logging.WARNING, logger="timeline_core"):
        resolved = resolve_event(_event("bad", "hello world"))
    assert resolved.start == 0
    assert resolved.resolved is False
    assert "unparseable" in caplog.text


# ------------------------------------------------------------------ #
#  TimelineConfig                                                      #
# ------------------------------------------------------------------ #


def test_config_defaults():
    config = TimelineConfig()
    assert config.orientation == "horizontal"
    assert config.scale == "compressed"
    assert config.bar_height == 24
    assert config.text_mode_point == "full"


def test_config_accepts_saved_document_and_ignores_presentation_fields():
    config = TimelineConfig.model_validate(
        {
            "orientation": "vertical",
            "scale": "proportional",
            "scrollMode": True,
            "barHeight": 30,
            "textModeRange": "compact",
            "textModePoint": "hidden",
            "theme": "retro",
            "darkMode": True,
            "language": "ca",
        }
    )
    assert config.is_proportional and not config.is_horizontal
    assert config.scroll_mode is True
    assert config.bar_height == 30
    assert config.text_mode_range == "compact"
    assert config.text_mode_point == "hidden"
    assert not hasattr(config, "theme")


def test_config_zero_bar_height_means_default():
    assert TimelineConfig(bar_height=0).bar_height == 24


@pytest.mark.parametrize("kwargs", [{"orientation": "diagonal"}, {"bar_height": -4}, {"text_mode_point": "tiny"}])
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        TimelineConfig(**kwargs)


def test_config_is_hashable():
    """Frozen configs can key a layout cache."""
    assert hash(TimelineConfig(scale="proportional")) == hash(TimelineConfig(scale="proportional"))
