"""Unit tests for StorySequencer."""
import pytest

from lifeflow.models import Story
from lifeflow.story_sequencer import (
    StorySequencer,
    days_between,
    extract_date,
    parse_time_to_minutes,
)


def names(sequence):
    return [item.name for item in sequence]


@pytest.fixture
def sequencer():
    return StorySequencer()


class TestParsing:
    """Test cases for date and time extraction."""

    @pytest.mark.parametrize('value,expected', [
        ('2025-01-02 10:00', '2025-01-02'),
        ('2025-01-02', '2025-01-02'),
        ('2025-01-02 10:00:30', '2025-01-02'),
        ('10:00', None),
        ('', None),
        (None, None),
        ('on 2025-01-02', None),
        ('2025-02-30 10:00', None),
        (' 2025-01-02 10:00', None),
    ])
    def test_extract_date(self, value, expected):
        assert extract_date(value) == expected

    @pytest.mark.parametrize('value,expected', [
        ('2025-01-01 09:30', 570),
        ('09:30', 570),
        ('9:05', 545),
        ('2025-01-01 23:59:59', 1439),
        ('00:00', 0),
        ('24:00', None),
        ('2025-01-01 10:61', None),
        ('10:30:60', None),
        ('2025-01-01', None),
        ('noon', None),
        ('', None),
        (None, None),
    ])
    def test_parse_time_to_minutes(self, value, expected):
        assert parse_time_to_minutes(value) == expected

    def test_extract_falls_back_to_end_time(self, sequencer):
        story = Story(name='S', start_time='2025-01-01', end_time='2025-01-01 11:00')
        assert sequencer.extract(story) == ('2025-01-01', 660)

    def test_extract_falls_back_when_start_time_invalid(self, sequencer):
        story = Story(name='S', start_time='2025-01-01 25:00', end_time='11:00')
        assert sequencer.extract(story) == ('2025-01-01', 660)

    def test_extract_date_never_comes_from_end_time(self, sequencer):
        story = Story(name='S', start_time='09:00', end_time='2025-01-01 11:00')
        assert sequencer.extract(story) == (None, 540)

    def test_invalid_calendar_date_keeps_time(self, sequencer):
        story = Story(name='S', start_time='2025-02-30 10:00')
        assert sequencer.extract(story) == (None, 600)


class TestDaysBetween:
    """Test cases for whole-day distance."""

    @pytest.mark.parametrize('first,second,expected', [
        ('2025-01-01', '2025-01-01', 0),
        ('2025-01-01', '2025-01-02', 0),
        ('2025-03-01', '2025-03-03', 1),
        ('2025-03-03', '2025-03-01', 1),
        ('2024-12-31', '2025-01-02', 1),
        ('2024-02-28', '2024-03-01', 1),
        ('2025-01-01', '2025-02-01', 30),
    ])
    def test_days_between(self, first, second, expected):
        assert days_between(first, second) == expected


class TestOrderDay:
    """Test cases for ordering within one day."""

    def test_timed_sorted_with_stable_ties(self, sequencer):
        stories = [
            Story(name='late', start_time='2025-01-01 15:00'),
            Story(name='tie-a', start_time='2025-01-01 09:00'),
            Story(name='tie-b', start_time='2025-01-01 09:00'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['tie-a', 'tie-b', 'late']

    def test_untimed_inserted_before_earliest_later_timed(self, sequencer):
        stories = [
            Story(name='X', start_time='2025-01-01'),
            Story(name='A', start_time='2025-01-01 15:00'),
            Story(name='B', start_time='2025-01-01 09:00'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['X', 'B', 'A']

    def test_untimed_only_considers_timed_after_it(self, sequencer):
        stories = [
            Story(name='A', start_time='2025-01-01 08:00'),
            Story(name='X', start_time='2025-01-01'),
            Story(name='B', start_time='2025-01-01 12:00'),
            Story(name='C', start_time='2025-01-01 10:00'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['A', 'X', 'C', 'B']

    def test_untimed_without_later_timed_is_appended(self, sequencer):
        stories = [
            Story(name='A', start_time='2025-01-01 09:00'),
            Story(name='X', start_time='2025-01-01'),
            Story(name='Y', start_time='2025-01-01'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['A', 'X', 'Y']

    def test_consecutive_untimed_keep_input_order(self, sequencer):
        stories = [
            Story(name='X', start_time='2025-01-01'),
            Story(name='Y', start_time='2025-01-01'),
            Story(name='A', start_time='2025-01-01 09:00'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['X', 'Y', 'A']

    def test_end_time_counts_as_time(self, sequencer):
        stories = [
            Story(name='P', start_time='2025-01-01 09:00'),
            Story(name='Q', start_time='2025-01-01', end_time='07:30'),
        ]
        ordered = sequencer.order_day(sequencer.describe(stories))
        assert [info.story.name for info in ordered] == ['Q', 'P']


class TestSequence:
    """Test cases for the full resort."""

    def test_empty_input(self, sequencer):
        assert sequencer.sequence([]) == []

    def test_dates_out_of_order(self, sequencer):
        stories = [
            Story(name='A', start_time='2025-01-02 10:00'),
            Story(name='B', start_time='2025-01-01 09:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['B', 'A']
        assert [item.distance_from_previous for item in result] == [0, 0]

    def test_undated_note_between_same_day_events(self, sequencer):
        stories = [
            Story(name='A', start_time='2025-01-01 09:00'),
            Story(name='Note', start_time=''),
            Story(name='B', start_time='2025-01-01 15:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['A', 'Note', 'B']
        assert result[1].date is None
        assert result[1].group_date == '2025-01-01'

    def test_all_undated_keeps_input_order(self, sequencer):
        stories = [Story(name=name) for name in ('one', 'two', 'three')]
        result = sequencer.sequence(stories)

        assert names(result) == ['one', 'two', 'three']
        assert all(item.distance_from_previous == 0 for item in result)
        assert all(item.group_date is None for item in result)

    def test_undated_routed_to_next_dated(self, sequencer):
        stories = [
            Story(name='Plan'),
            Story(name='Trip', start_time='2025-06-15'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['Plan', 'Trip']
        assert [item.group_date for item in result] == ['2025-06-15', '2025-06-15']

    def test_distance_counts_days_in_between(self, sequencer):
        stories = [
            Story(name='e1', start_time='2025-03-01 09:00'),
            Story(name='e2', start_time='2025-03-01 14:00'),
            Story(name='e3', start_time='2025-03-03 08:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['e1', 'e2', 'e3']
        assert [item.distance_from_previous for item in result] == [0, 0, 1]

    def test_undated_after_last_dated_goes_to_end(self, sequencer):
        stories = [
            Story(name='U1'),
            Story(name='D', start_time='2025-01-01'),
            Story(name='U2'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['U1', 'D', 'U2']
        assert [item.group_date for item in result] == ['2025-01-01', '2025-01-01', None]

    def test_routing_follows_input_order_not_date_order(self, sequencer):
        stories = [
            Story(name='D2', start_time='2025-02-01'),
            Story(name='U'),
            Story(name='D1', start_time='2025-01-01'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['U', 'D1', 'D2']
        assert [item.distance_from_previous for item in result] == [0, 0, 30]

    def test_routed_member_with_time_is_ordered_by_time(self, sequencer):
        stories = [
            Story(name='Call', start_time='10:00'),
            Story(name='Breakfast', start_time='2025-01-01 09:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['Breakfast', 'Call']
        assert result[1].time_minutes == 600
        assert not result[1].has_date

    def test_routed_untimed_member_uses_full_day_membership(self, sequencer):
        stories = [
            Story(name='Lunch', start_time='2025-01-01 12:00'),
            Story(name='Note'),
            Story(name='Evening', start_time='2025-01-01 19:00'),
            Story(name='Morning', start_time='2025-01-01 08:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['Note', 'Morning', 'Lunch', 'Evening']

    def test_undated_does_not_reset_distance(self, sequencer):
        stories = [
            Story(name='D1', start_time='2025-01-01'),
            Story(name='U'),
            Story(name='D2', start_time='2025-01-05'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['D1', 'U', 'D2']
        assert [item.distance_from_previous for item in result] == [0, 0, 3]

    def test_malformed_values_are_treated_as_undated(self, sequencer):
        stories = [
            Story(name='junk', start_time='sometime soon', end_time='later'),
            Story(name='D', start_time='2025-01-01 09:00'),
        ]
        result = sequencer.sequence(stories)

        assert names(result) == ['junk', 'D']
        assert result[0].date is None
        assert result[0].time_minutes is None

    def test_preserves_length_and_members(self, sequencer):
        stories = [
            Story(name='a', start_time='2025-05-01 10:00'),
            Story(name='b'),
            Story(name='c', start_time='2024-12-31'),
            Story(name='d', start_time='08:00'),
            Story(name='e', start_time='2025-05-01'),
            Story(name='f'),
            Story(name='a', start_time='2025-05-01 10:00'),
        ]
        result = sequencer.sequence(stories)

        assert len(result) == len(stories)
        assert sorted(names(result)) == sorted(story.name for story in stories)

    def test_day_groups_contiguous_and_ascending(self, sequencer):
        stories = [
            Story(name='a', start_time='2025-05-01 10:00'),
            Story(name='b'),
            Story(name='c', start_time='2024-12-31'),
            Story(name='d', start_time='2025-05-01 07:00'),
            Story(name='e', start_time='2024-12-31 23:00'),
            Story(name='f'),
        ]
        result = sequencer.sequence(stories)

        groups = [item.group_date for item in result]
        seen = []
        for group_date in groups:
            if not seen or seen[-1] != group_date:
                assert group_date not in seen
                seen.append(group_date)
        dated = [group_date for group_date in seen if group_date is not None]
        assert dated == sorted(dated)
        assert groups[-1] is None

    def test_deterministic(self, sequencer):
        stories = [
            Story(name='a', start_time='2025-05-01 10:00'),
            Story(name='b'),
            Story(name='c', start_time='2025-05-01'),
            Story(name='d', start_time='2025-04-01 10:00'),
        ]
        assert sequencer.sequence(stories) == sequencer.sequence(stories)

    def test_input_is_not_mutated(self, sequencer):
        stories = [
            Story(name='A', start_time='2025-01-02'),
            Story(name='B', start_time='2025-01-01'),
        ]
        snapshot = list(stories)
        sequencer.sequence(stories)
        assert stories == snapshot

    def test_with_distances_returns_new_objects(self, sequencer):
        assembled = sequencer.assemble([
            Story(name='A', start_time='2025-01-01'),
            Story(name='B', start_time='2025-01-10'),
        ])
        result = sequencer.with_distances(assembled)

        assert assembled[1].distance_from_previous == 0
        assert result[1].distance_from_previous == 8
