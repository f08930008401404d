"""Story processor for validating and normalizing raw story records."""
import hashlib
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from lifeflow.layout import visual_spacing
from lifeflow.models import Address, SequencedStory, Story
from lifeflow.time_validation import validate_time_format, validate_time_range

logger = logging.getLogger(__name__)


class StoryProcessor:
    """Processor for validating and normalizing story records."""

    MAX_NAME_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000

    def process_stories(self, records: Iterable[Any]) -> List[Story]:
        """
        Process and validate raw story records.

        Records that fail validation are skipped, so the result may be
        shorter than the input. Order is preserved.

        Args:
            records: Raw story dictionaries, in document order

        Returns:
            List of validated Story objects
        """
        records = list(records)
        stories = []

        for position, record in enumerate(records):
            try:
                story = self._process_single_story(record)
                if story:
                    stories.append(story)
            except (TypeError, ValueError) as e:
                logger.warning(
                    f"Failed to process story at position {position}: {e}"
                )
                continue

        logger.info(
            f"Processed {len(stories)} valid stories out of "
            f"{len(records)} total records"
        )
        return stories

    def _process_single_story(self, record: Any) -> Optional[Story]:
        """
        Process a single record.

        Args:
            record: Raw story dictionary

        Returns:
            Story object or None if validation fails
        """
        if not isinstance(record, dict):
            logger.warning(f"Skipping story record of type {type(record).__name__}")
            return None

        name = self._clean(record.get('name')) or ''
        start_time = self._clean(record.get('start_time'))
        end_time = self._clean(record.get('end_time'))

        if not self._validate_times(name, start_time, end_time):
            return None

        description = self._clean(record.get('description'))
        if description:
            description = description[:self.MAX_DESCRIPTION_LENGTH]

        return Story(
            name=name[:self.MAX_NAME_LENGTH],
            start_time=start_time,
            end_time=end_time,
            description=description,
            address=self._parse_address(record.get('address')),
            story_id=self._clean(record.get('id'))
        )

    def _validate_times(self, name: str, start_time: Optional[str],
                        end_time: Optional[str]) -> bool:
        """
        Validate the time fields of a story.

        Args:
            name: Story name, for log messages
            start_time: Normalized start time
            end_time: Normalized end time

        Returns:
            True if valid, False otherwise
        """
        for field_name, value in (('start_time', start_time), ('end_time', end_time)):
            if not validate_time_format(value):
                logger.warning(
                    f"Invalid {field_name} format for story '{name}': {value}"
                )
                return False

        result = validate_time_range(start_time, end_time)
        if not result.valid:
            logger.warning(f"Invalid time range for story '{name}': {result.error}")
            return False

        return True

    def _parse_address(self, raw: Any) -> Optional[Address]:
        if raw is None:
            return None
        if isinstance(raw, str):
            return Address(name=raw.strip()) if raw.strip() else None
        if not isinstance(raw, dict):
            raise TypeError(f"address must be a mapping, got {type(raw).__name__}")

        name = self._clean(raw.get('name')) or ''
        longitude = raw.get('longitude')
        latitude = raw.get('latitude')

        # A name-only placeholder address carries nothing
        if not name and longitude is None and latitude is None and not raw.get('address'):
            return None

        return Address(
            name=name,
            address=self._clean(raw.get('address')),
            longitude=float(longitude) if longitude is not None else None,
            latitude=float(latitude) if latitude is not None else None,
            coordinate_system=self._clean(raw.get('coordinate_system'))
        )

    def _clean(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def assign_ids(self, stories: List[Story]) -> List[Story]:
        """
        Give every story without an id, or repeating an earlier id, a generated one.

        Args:
            stories: Stories in document order

        Returns:
            New list where every story has a unique story_id
        """
        taken: Set[str] = {story.story_id for story in stories if story.story_id}
        seen: Set[str] = set()
        result = []

        for story in stories:
            if story.story_id and story.story_id not in seen:
                seen.add(story.story_id)
                result.append(story)
                continue
            if story.story_id:
                logger.warning(f"Duplicate story id {story.story_id}, generating a new one")
            story_id = self.generate_story_id(story, taken)
            taken.add(story_id)
            seen.add(story_id)
            result.append(Story(
                name=story.name,
                start_time=story.start_time,
                end_time=story.end_time,
                description=story.description,
                address=story.address,
                story_id=story_id
            ))

        return result

    def generate_story_id(self, story: Story, taken: Optional[Set[str]] = None) -> str:
        """
        Generate an identifier from a hash of the story content.

        Args:
            story: Story to identify
            taken: Ids already in use; a counter is mixed in on collision

        Returns:
            Story ID (SHA256 hash)
        """
        taken = taken or set()
        composite = (
            f"{story.name}|{story.start_time or ''}|"
            f"{story.end_time or ''}|{story.description or ''}"
        )

        story_id = hashlib.sha256(composite.encode('utf-8')).hexdigest()
        counter = 1
        while story_id in taken:
            story_id = hashlib.sha256(
                f"{composite}|{counter}".encode('utf-8')
            ).hexdigest()
            counter += 1

        return story_id

    def to_record(self, story: Story) -> Dict[str, Any]:
        """Convert a Story back into the plain record shape."""
        record: Dict[str, Any] = {
            'id': story.story_id,
            'name': story.name,
            'start_time': story.start_time or '',
            'end_time': story.end_time or '',
            'description': story.description or '',
        }
        if story.address:
            address = {'name': story.address.name}
            for key in ('address', 'longitude', 'latitude', 'coordinate_system'):
                value = getattr(story.address, key)
                if value is not None:
                    address[key] = value
            record['address'] = address
        return record

    def to_sequenced_record(self, item: SequencedStory) -> Dict[str, Any]:
        """Record shape with the sequencing annotations added."""
        record = self.to_record(item.story)
        record.update({
            'date': item.date,
            'has_date': item.has_date,
            'time_minutes': item.time_minutes,
            'group_date': item.group_date,
            'distance_from_previous': item.distance_from_previous,
            'visual_spacing': visual_spacing(item.distance_from_previous),
        })
        return record
