"""Helpers for presenting a sequenced story list."""
import logging
from typing import List, Sequence

from lifeflow.models import SameDayStates, SequencedStory

logger = logging.getLogger(__name__)

# (max distance in days, separator size)
SPACING_STEPS = [
    (0, 8),
    (1, 16),
    (7, 24),
    (30, 32),
    (365, 40),
]
MAX_SPACING = 48


def move_up(sequence: Sequence[SequencedStory], index: int) -> List[SequencedStory]:
    """
    Swap the story at index with the one before it.

    Only meant for undated stories; the caller enforces that. Day groups
    are not recomputed.

    Args:
        sequence: Current ordered list
        index: Position of the story to move

    Returns:
        New list; an unchanged copy when index is 0 or out of range
    """
    return _move(sequence, index, index - 1)


def move_down(sequence: Sequence[SequencedStory], index: int) -> List[SequencedStory]:
    """Swap the story at index with the one after it. See move_up."""
    return _move(sequence, index, index + 1)


def _move(sequence: Sequence[SequencedStory], source: int, target: int) -> List[SequencedStory]:
    items = list(sequence)
    if not (0 <= source < len(items)) or not (0 <= target < len(items)):
        logger.debug(f"Ignoring move from {source} to {target} in {len(items)} stories")
        return items

    story = items.pop(source)
    items.insert(target, story)
    return items


def annotate_same_day(sequence: Sequence[SequencedStory]) -> SameDayStates:
    """
    Flag stories that continue a day already started above them.

    A run is a maximal stretch of adjacent stories routed to the same day,
    undated members included. In runs of two or more, every member but the
    first is flagged and each member gets its 0-based rank in the run.

    Args:
        sequence: Output of StorySequencer.sequence

    Returns:
        SameDayStates aligned with the input positions
    """
    states = SameDayStates(
        is_same_day=[False] * len(sequence),
        positions=[0] * len(sequence)
    )

    start = 0
    while start < len(sequence):
        group_date = sequence[start].group_date
        end = start + 1
        while (
            group_date is not None
            and end < len(sequence)
            and sequence[end].group_date == group_date
        ):
            end += 1

        if end - start >= 2:
            for offset, index in enumerate(range(start, end)):
                states.is_same_day[index] = offset > 0
                states.positions[index] = offset

        start = end

    return states


def search_stories(sequence: Sequence[SequencedStory], query: str) -> List[SequencedStory]:
    """
    Case-insensitive substring search over a sequenced list.

    Matches name, description, address name and date. Order is kept;
    a blank query matches everything.
    """
    needle = (query or '').strip().lower()
    if not needle:
        return list(sequence)

    matches = []
    for item in sequence:
        story = item.story
        haystacks = [
            story.name,
            story.description,
            story.address.name if story.address else None,
            item.date,
        ]
        if any(text and needle in text.lower() for text in haystacks):
            matches.append(item)

    logger.debug(f"Search '{needle}' matched {len(matches)} of {len(sequence)} stories")
    return matches


def visual_spacing(distance: int) -> int:
    """Separator size for a gap of the given number of days."""
    for max_distance, spacing in SPACING_STEPS:
        if distance <= max_distance:
            return spacing
    return MAX_SPACING
