"""
Available time slots

Gaps of 30 minutes or more between the timed events of a day. Gaps inside
core hours are always offered; after core hours a gap is only offered when
it sits between two evening events. Declined events never block time.
"""

from dataclasses import dataclass
from typing import List, Tuple

from .layout import DayLayout

MAX_BLOCKS = 10
BLOCK_MINUTES = 30


@dataclass(frozen=True)
class FreeSlot:
    start_minutes: int
    end_minutes: int
    in_core_hours: bool = True

    @property
    def duration(self) -> int:
        return self.end_minutes - self.start_minutes


def _busy_intervals(layout: DayLayout) -> List[Tuple[int, int]]:
    busy = sorted(
        (entry.start_minutes, entry.end_minutes)
        for entry in layout.timed_events
        if entry.event.self_response_status != 'declined'
    )

    merged: List[Tuple[int, int]] = []
    for start, end in busy:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def find_available_slots(layout: DayLayout, core_start_hour: int = 9, core_end_hour: int = 17,
                         min_minutes: int = BLOCK_MINUTES) -> List[FreeSlot]:
    """Insert available time slots for gaps of min_minutes or more"""
    core_start = core_start_hour * 60
    core_end = core_end_hour * 60
    busy = _busy_intervals(layout)
    slots: List[FreeSlot] = []

    # Core hours: gaps between busy blocks, clipped to the core window
    cursor = core_start
    for start, end in busy:
        if start >= core_end:
            break
        if start - cursor >= min_minutes:
            slots.append(FreeSlot(cursor, start))
        cursor = max(cursor, end)
    if core_end - cursor >= min_minutes:
        slots.append(FreeSlot(cursor, core_end))

    # Evening: only between two events that both end after core hours
    evening = [(s, e) for s, e in busy if e > core_end]
    for (_, prev_end), (next_start, _) in zip(evening, evening[1:]):
        gap_start = max(prev_end, core_end)
        if next_start - gap_start >= min_minutes:
            slots.append(FreeSlot(gap_start, next_start, in_core_hours=False))

    return slots


def slot_blocks(slot: FreeSlot) -> str:
    """Generate summary for available slots with visual boxes"""
    num_blocks = min(slot.duration // BLOCK_MINUTES, MAX_BLOCKS)
    box = "🟩" if slot.in_core_hours else "⬛"
    return f"{box * num_blocks} Available"
