"""Overlap resolution for range bars (lanes) and detail cards (stack levels).

Both allocators are greedy single passes over events in resolved start
order. Their occupancy tables are local to one call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from timeline_core import ResolvedEvent

logger = logging.getLogger(__name__)

CARD_GAP_PX = 50
CARD_FOOTPRINT_HORIZONTAL_PX = 320
CARD_FOOTPRINT_VERTICAL_PX = 180
MAX_STACK_LEVEL = 50
LANE_WARNING_THRESHOLD = 50

SIDE_BEFORE = "before"
SIDE_AFTER = "after"
SIDE_SIGN = {SIDE_BEFORE: -1, SIDE_AFTER: 1}


@dataclass(frozen=True)
class CardSlot:
    side: str
    level: int
    clamped: bool = False

    @property
    def sign(self) -> int:
        return SIDE_SIGN[self.side]


# -------------------------
# Lanes
# -------------------------
def allocate_intervals(intervals: Sequence[tuple[float, float]]) -> list[int]:
    """Interval partitioning: each interval gets the first track that is free.

    ``intervals`` must be sorted by start. A track is free when its
    occupied-until coordinate is <= the interval start, so touching ranges
    share a track. The number of tracks opened equals the maximum number of
    simultaneously open intervals.
    """
    tracks: list[float] = []
    lanes: list[int] = []
    for start, end in intervals:
        for track_id, occupied_until in enumerate(tracks):
            if occupied_until <= start:
                tracks[track_id] = max(occupied_until, end)
                lanes.append(track_id)
                break
        else:
            tracks.append(end)
            lanes.append(len(tracks) - 1)
    return lanes


def allocate_lanes(resolved: Sequence[ResolvedEvent]) -> list[int | None]:
    """Lane per event, None for point events."""
    range_indices = [i for i, r in enumerate(resolved) if r.event.has_end]
    assigned = allocate_intervals([(resolved[i].start, resolved[i].end) for i in range_indices])

    lanes: list[int | None] = [None] * len(resolved)
    for i, lane in zip(range_indices, assigned):
        lanes[i] = lane

    lane_count = max(assigned, default=-1) + 1
    if lane_count > LANE_WARNING_THRESHOLD:
        logger.warning(f"{lane_count} concurrent range lanes; bars will be very thin")
    return lanes


# -------------------------
# Card stacking
# -------------------------
def card_footprint(horizontal: bool) -> int:
    return CARD_FOOTPRINT_HORIZONTAL_PX if horizontal else CARD_FOOTPRINT_VERTICAL_PX


def side_for_index(index: int) -> str:
    return SIDE_BEFORE if index % 2 == 0 else SIDE_AFTER


def allocate_card_levels(
    anchors_px: Sequence[float],
    footprint: int,
    gap: int = CARD_GAP_PX,
    max_level: int = MAX_STACK_LEVEL,
) -> list[CardSlot]:
    """Assign a (side, level) to every card anchored at ``anchors_px``.

    Anchors are given in sort order. Sides alternate by index; each side
    is packed independently. A card takes the lowest level whose
    occupied-until + gap is <= its anchor. Past ``max_level`` the card is
    clamped to ``max_level`` and occupancy is left untouched.
    """
    occupied: dict[tuple[str, int], float] = {}
    slots: list[CardSlot] = []
    for index, anchor in enumerate(anchors_px):
        side = side_for_index(index)
        level = 0
        while True:
            occupied_until = occupied.get((side, level))
            if occupied_until is None or occupied_until + gap <= anchor:
                occupied[(side, level)] = anchor + footprint
                slots.append(CardSlot(side=side, level=level))
                break
            level += 1
            if level > max_level:
                slots.append(CardSlot(side=side, level=max_level, clamped=True))
                break

    clamped = sum(1 for slot in slots if slot.clamped)
    if clamped:
        logger.warning(f"{clamped} card(s) clamped to stack level {max_level}; cards will overlap")
    return slots


def card_offset(slot: CardSlot, base_distance: int, level_spacing: int) -> int:
    return slot.sign * (base_distance + slot.level * level_spacing)
