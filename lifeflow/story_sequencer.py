"""Chronological ordering and grouping of stories."""
import logging
import re
from datetime import date as Date
from typing import Dict, List, Optional, Sequence, Tuple

from lifeflow.models import SequencedStory, Story, StoryInfo

logger = logging.getLogger(__name__)

DATE_PREFIX_RE = re.compile(r'^(\d{4}-\d{2}-\d{2})')
TRAILING_TIME_RE = re.compile(r'(?:^|\s)(\d{1,2}):(\d{2})(?::(\d{2}))?$')


def extract_date(value: Optional[str]) -> Optional[str]:
    """
    Extract the leading YYYY-MM-DD component of a time string.

    Args:
        value: Raw start time string, may be None or empty

    Returns:
        The date string, or None if absent or not a real calendar date
    """
    if not value:
        return None

    match = DATE_PREFIX_RE.match(value)
    if not match:
        return None

    try:
        Date.fromisoformat(match.group(1))
    except ValueError:
        return None

    return match.group(1)


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Parse the trailing HH:MM or HH:MM:SS token into minutes since midnight.

    Args:
        value: Raw time string ("2025-01-01 09:30", "09:30:15", ...)

    Returns:
        Minutes in [0, 1439], or None if no valid clock time is present
    """
    if not value:
        return None

    match = TRAILING_TIME_RE.search(value.strip())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3)) if match.group(3) else 0

    if hours > 23 or minutes > 59 or seconds > 59:
        return None

    return hours * 60 + minutes + seconds // 60


def days_between(first: str, second: str) -> int:
    """Whole calendar days strictly between two YYYY-MM-DD dates."""
    delta = abs((Date.fromisoformat(second) - Date.fromisoformat(first)).days)
    return max(0, delta - 1)


class StorySequencer:
    """
    Orders stories into day groups and annotates the inter-day distance.

    Every call derives its state from the input list alone, so the same
    input always yields the same output and the input is never mutated.
    """

    def sequence(self, stories: Sequence[Story]) -> List[SequencedStory]:
        """
        Run a full resort: assemble day groups, then compute distances.

        Args:
            stories: Stories in their stored (document) order

        Returns:
            Newly allocated list of SequencedStory objects
        """
        ordered = self.with_distances(self.assemble(stories))
        logger.info(
            f"Sequenced {len(ordered)} stories into "
            f"{len({s.group_date for s in ordered if s.group_date})} day groups"
        )
        return ordered

    def extract(self, story: Story) -> Tuple[Optional[str], Optional[int]]:
        """
        Derive the date and clock time of a story.

        The date only ever comes from start_time. The time comes from
        start_time and falls back to end_time.

        Args:
            story: Story to inspect

        Returns:
            Tuple of (date, time_minutes); either may be None
        """
        story_date = extract_date(story.start_time)
        time_minutes = parse_time_to_minutes(story.start_time)
        if time_minutes is None:
            time_minutes = parse_time_to_minutes(story.end_time)
        return story_date, time_minutes

    def describe(self, stories: Sequence[Story]) -> List[StoryInfo]:
        """Attach derived fields and the current input position to each story."""
        infos = []
        for index, story in enumerate(stories):
            story_date, time_minutes = self.extract(story)
            infos.append(StoryInfo(
                story=story,
                original_index=index,
                date=story_date,
                time_minutes=time_minutes
            ))
        return infos

    def order_day(self, infos: Sequence[StoryInfo]) -> List[StoryInfo]:
        """
        Order the members of a single day.

        Timed members are sorted by clock time, ties kept in input order.
        Each untimed member is inserted right before the earliest timed
        member that comes after it in the input, or appended to the day
        when there is none.

        Args:
            infos: Members of one day group

        Returns:
            Ordered list of the same members
        """
        timed = sorted(
            (info for info in infos if info.has_time),
            key=lambda info: (info.time_minutes, info.original_index)
        )
        untimed = sorted(
            (info for info in infos if not info.has_time),
            key=lambda info: info.original_index
        )

        day_list = list(timed)
        for info in untimed:
            later_timed = [
                candidate for candidate in timed
                if candidate.original_index > info.original_index
            ]
            if not later_timed:
                day_list.append(info)
                continue

            # min() keeps the first of equal times, i.e. the lowest index
            anchor = min(later_timed, key=lambda candidate: candidate.time_minutes)
            insert_at = next(
                i for i, member in enumerate(day_list) if member is anchor
            )
            day_list.insert(insert_at, info)

        return day_list

    def assemble(self, stories: Sequence[Story]) -> List[SequencedStory]:
        """
        Build the cross-day order.

        Undated stories are routed to the day of the nearest following
        dated story in the input; those with no dated story after them go
        to a trailing bucket in input order. Day ordering runs once the
        routing is complete, on the full membership of each day.

        Args:
            stories: Stories in their stored order

        Returns:
            Ordered SequencedStory list with distances left at 0
        """
        infos = self.describe(stories)

        groups: Dict[str, List[StoryInfo]] = {}
        ungrouped: List[StoryInfo] = []

        next_date: Optional[str] = None
        routed: List[Tuple[StoryInfo, Optional[str]]] = []
        for info in reversed(infos):
            if info.has_date:
                next_date = info.date
                routed.append((info, info.date))
            else:
                routed.append((info, next_date))
        routed.reverse()

        for info, group_date in routed:
            if group_date is None:
                ungrouped.append(info)
            else:
                groups.setdefault(group_date, []).append(info)

        logger.debug(
            f"Routed {len(infos)} stories: {len(groups)} day groups, "
            f"{len(ungrouped)} ungrouped"
        )

        result: List[SequencedStory] = []
        for group_date in sorted(groups):
            for info in self.order_day(groups[group_date]):
                result.append(self._to_sequenced(info, group_date))

        for info in ungrouped:
            result.append(self._to_sequenced(info, None))

        return result

    def with_distances(self, ordered: Sequence[SequencedStory]) -> List[SequencedStory]:
        """
        Compute distance_from_previous for each story.

        Args:
            ordered: Stories in final order

        Returns:
            New list with distance_from_previous filled in
        """
        result = []
        last_seen_date: Optional[str] = None

        for item in ordered:
            distance = 0
            if item.date is not None:
                if last_seen_date is not None:
                    distance = days_between(last_seen_date, item.date)
                last_seen_date = item.date
            result.append(SequencedStory(
                story=item.story,
                date=item.date,
                time_minutes=item.time_minutes,
                group_date=item.group_date,
                distance_from_previous=distance
            ))

        return result

    def _to_sequenced(self, info: StoryInfo, group_date: Optional[str]) -> SequencedStory:
        return SequencedStory(
            story=info.story,
            date=info.date,
            time_minutes=info.time_minutes,
            group_date=group_date
        )
