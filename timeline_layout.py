from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field

from timeline_axis import AxisScale, AxisTick, generate_ticks
from timeline_core import (
    ResolvedEvent,
    TimelineConfig,
    TimelineEvent,
    extract_embed_url,
    format_display_date,
    resolve_events,
)
from timeline_packing import (
    CardSlot,
    allocate_card_levels,
    allocate_lanes,
    card_footprint,
    card_offset,
)

logger = logging.getLogger(__name__)

# Axis length (px)
AXIS_LENGTH_HORIZONTAL = 1200
AXIS_LENGTH_VERTICAL = 800
SCROLL_MIN_HORIZONTAL = 1600
SCROLL_MIN_VERTICAL = 1200
SCROLL_PER_EVENT_HORIZONTAL = 250
SCROLL_PER_EVENT_VERTICAL = 200

# Cards and connectors (px)
CARD_BASE_DISTANCE = 56
CARD_LEVEL_SPACING = 160
CARD_ALIGN_START_BELOW = 15
CARD_ALIGN_END_ABOVE = 85

# Range bars
LANE_SPACING = 8
MIN_BAR_PERCENT = 0.5

# Container (px)
CONTAINER_BASE_HEIGHT = 600
CONTAINER_BASE_WIDTH = 800
CONTAINER_LANE_MARGIN = 300


@dataclass(frozen=True)
class Connector:
    start: float
    length: float


@dataclass(frozen=True)
class RangeBar:
    event_id: str
    start: float
    length: float
    offset: float
    lane: int


@dataclass(frozen=True)
class EventGeometry:
    event_id: str
    index: int
    position: float
    is_range: bool
    lane: int | None
    side: str
    level: int
    card_offset: int
    card_align: str
    anchor_offset: float
    connector: Connector
    text_mode: str
    date_label: str
    color: str
    embed_url: str | None
    resolved: bool


@dataclass
class LayoutResult:
    width: int
    height: int
    axis_length: int
    events: list[EventGeometry] = field(default_factory=list)
    bars: list[RangeBar] = field(default_factory=list)
    ticks: list[AxisTick] = field(default_factory=list)
    max_lane: int = 0
    max_level: int = 0
    saturated: bool = False

    def geometry_for(self, event_id: str) -> EventGeometry:
        for geometry in self.events:
            if geometry.event_id == event_id:
                return geometry
        raise KeyError(event_id)

    def to_dict(self) -> dict:
        return asdict(self)


# -------------------------
# Sizing helpers
# -------------------------
def axis_length(config: TimelineConfig, event_count: int) -> int:
    horizontal = config.is_horizontal
    if not config.scroll_mode:
        return AXIS_LENGTH_HORIZONTAL if horizontal else AXIS_LENGTH_VERTICAL
    per_event = SCROLL_PER_EVENT_HORIZONTAL if horizontal else SCROLL_PER_EVENT_VERTICAL
    minimum = SCROLL_MIN_HORIZONTAL if horizontal else SCROLL_MIN_VERTICAL
    return max(minimum, event_count * per_event)


def lane_pitch(config: TimelineConfig) -> int:
    return config.bar_height + LANE_SPACING


def lane_offset(lane: int, max_lane: int, config: TimelineConfig) -> float:
    """Cross-axis offset of a lane's leading edge, centred on the axis."""
    pitch = lane_pitch(config)
    band = (max_lane + 1) * pitch - LANE_SPACING
    return -band / 2 + lane * pitch


def container_size(config: TimelineConfig, length: int, max_lane: int, max_level: int) -> tuple[int, int]:
    depth = max(0, max_level - 1) * CARD_LEVEL_SPACING
    lane_height = (max_lane + 1) * lane_pitch(config) if config.is_proportional else 0
    content = max(CONTAINER_BASE_HEIGHT, lane_height + CONTAINER_LANE_MARGIN)
    if config.is_horizontal:
        return length, content + depth
    return CONTAINER_BASE_WIDTH + depth, length


def card_align(position: float) -> str:
    if position < CARD_ALIGN_START_BELOW:
        return "start"
    if position > CARD_ALIGN_END_ABOVE:
        return "end"
    return "center"


def date_label(event: TimelineEvent) -> str:
    label = format_display_date(event.start_date)
    if event.has_end:
        label = f"{label} - {format_display_date(event.end_date)}"
    return label


def _event_geometry(
    index: int,
    resolved: ResolvedEvent,
    position: float,
    lane: int | None,
    slot: CardSlot,
    max_lane: int,
    config: TimelineConfig,
) -> EventGeometry:
    event = resolved.event
    is_range = event.has_end and config.is_proportional
    anchor = lane_offset(lane, max_lane, config) if is_range and lane is not None else 0.0
    offset = card_offset(slot, CARD_BASE_DISTANCE, CARD_LEVEL_SPACING)
    text_mode = config.text_mode_range if is_range else config.text_mode_point
    return EventGeometry(
        event_id=event.event_id,
        index=index,
        position=position,
        is_range=is_range,
        lane=lane,
        side=slot.side,
        level=slot.level,
        card_offset=offset,
        card_align=card_align(position),
        anchor_offset=anchor,
        connector=Connector(start=min(offset, anchor), length=abs(offset - anchor)),
        text_mode=text_mode,
        date_label=date_label(event),
        color=event.color,
        embed_url=extract_embed_url(event.media_url),
        resolved=resolved.resolved,
    )


# -------------------------
# Main
# -------------------------
def layout(events: Iterable[TimelineEvent], config: TimelineConfig | None = None) -> LayoutResult:
    """Compute the full timeline geometry for ``events`` under ``config``.

    Pure: the same events and config always give the same result, and no
    state outlives the call. Events may arrive in any order; they are
    sorted once by resolved start and that order drives every allocator.
    """
    config = config or TimelineConfig()
    resolved = resolve_events(events)
    scale = AxisScale.from_events(resolved, config.scale)
    length = axis_length(config, len(resolved))

    positions = [scale.position(i, r) for i, r in enumerate(resolved)]

    if config.is_proportional:
        lanes = allocate_lanes(resolved)
    else:
        lanes = [None] * len(resolved)
    max_lane = max((lane for lane in lanes if lane is not None), default=0)

    anchors_px = [position / 100 * length for position in positions]
    slots = allocate_card_levels(anchors_px, card_footprint(config.is_horizontal))
    max_level = max((slot.level for slot in slots), default=0)

    width, height = container_size(config, length, max_lane, max_level)
    result = LayoutResult(
        width=width,
        height=height,
        axis_length=length,
        max_lane=max_lane,
        max_level=max_level,
        saturated=any(slot.clamped for slot in slots),
        ticks=generate_ticks(scale),
    )

    for i, r in enumerate(resolved):
        result.events.append(_event_geometry(i, r, positions[i], lanes[i], slots[i], max_lane, config))
        lane = lanes[i]
        if lane is None:
            continue
        start = positions[i]
        end = scale.position_of_value(r.end)
        result.bars.append(
            RangeBar(
                event_id=r.event.event_id,
                start=start,
                length=max(MIN_BAR_PERCENT, end - start),
                offset=lane_offset(lane, max_lane, config),
                lane=lane,
            )
        )

    logger.debug(
        f"Laid out {len(resolved)} events ({config.scale}, {config.orientation}): "
        f"{width}x{height}px, {max_lane + 1} lane(s), {max_level + 1} stack level(s)"
    )
    return result
