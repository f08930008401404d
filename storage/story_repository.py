"""DynamoDB repository for story storage operations."""
import logging
import time
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from lifeflow.models import Address, Story, SyncResult

logger = logging.getLogger(__name__)


class StoryRepository:
    """
    Repository for stories kept one item per story in DynamoDB.

    Each item stores its position in the root document. Only that order is
    persisted; chronological sequencing is recomputed on every load.
    """

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized StoryRepository for table: {table_name}")

    def load_all(self) -> List[Story]:
        """
        Load all stories in root-document order.

        Returns:
            List of Story objects sorted by stored position
        """
        return [story for _, story in self._load_positioned()]

    def get_all_stories(self) -> Dict[str, Tuple[int, Story]]:
        """
        Retrieve all stories keyed by id.

        Returns:
            Dictionary mapping story_id to (position, Story)
        """
        return {
            story.story_id: (position, story)
            for position, story in self._load_positioned()
        }

    def _load_positioned(self) -> List[Tuple[int, Story]]:
        logger.info("Scanning DynamoDB table for all stories")

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        positioned = []
        for item in items:
            converted = self._item_to_story(item)
            if converted:
                positioned.append(converted)

        # Ties on position fall back to id so the load order is stable
        positioned.sort(key=lambda entry: (entry[0], entry[1].story_id))
        logger.info(f"Retrieved {len(positioned)} stories from DynamoDB")
        return positioned

    def sync_stories(self, stories: List[Story]) -> SyncResult:
        """
        Synchronize the stored stories with the given list.

        The list order becomes the stored position of each story.

        Args:
            stories: Every story in document order; each must have an id

        Returns:
            SyncResult with counts of added, updated, deleted stories
        """
        logger.info(f"Starting sync process with {len(stories)} stories")
        errors = []

        missing_ids = [story.name for story in stories if not story.story_id]
        if missing_ids:
            error_msg = f"Stories without id cannot be stored: {missing_ids}"
            logger.error(error_msg)
            return SyncResult(added=0, updated=0, deleted=0, errors=[error_msg])

        ids = [story.story_id for story in stories]
        duplicates = sorted({story_id for story_id in ids if ids.count(story_id) > 1})
        if duplicates:
            error_msg = f"Duplicate story ids cannot be stored: {duplicates}"
            logger.error(error_msg)
            return SyncResult(added=0, updated=0, deleted=0, errors=[error_msg])

        try:
            existing = self.get_all_stories()
            wanted = {
                story.story_id: (position, story)
                for position, story in enumerate(stories)
            }

            to_add = [
                entry for story_id, entry in wanted.items()
                if story_id not in existing
            ]
            to_update = [
                entry for story_id, entry in wanted.items()
                if story_id in existing and
                self._stories_differ(entry, existing[story_id])
            ]
            ids_to_delete = [
                story_id for story_id in existing
                if story_id not in wanted
            ]

            logger.info(
                f"Sync plan: {len(to_add)} to add, "
                f"{len(to_update)} to update, "
                f"{len(ids_to_delete)} to delete"
            )

            added_count = 0
            updated_count = 0
            deleted_count = 0

            if to_add or to_update:
                write_count = self.batch_write_stories(to_add + to_update)
                added_count = min(write_count, len(to_add))
                updated_count = write_count - added_count

            if ids_to_delete:
                deleted_count = self.batch_delete_stories(ids_to_delete)

            logger.info(
                f"Sync complete: {added_count} added, {updated_count} updated, "
                f"{deleted_count} deleted"
            )

            return SyncResult(
                added=added_count,
                updated=updated_count,
                deleted=deleted_count,
                errors=errors
            )

        except ClientError as e:
            error_msg = f"Error during sync operation: {e}"
            logger.error(error_msg)
            errors.append(error_msg)
            return SyncResult(added=0, updated=0, deleted=0, errors=errors)

    def save_story(self, story: Story, position: int) -> None:
        """
        Write a single story at the given document position.

        Args:
            story: Story with a story_id
            position: Index in the root document
        """
        if not story.story_id:
            raise ValueError(f"Story '{story.name}' has no id")
        self.table.put_item(Item=self._story_to_item(story, position))
        logger.info(f"Saved story {story.story_id} at position {position}")

    def delete_story(self, story_id: str) -> None:
        self.table.delete_item(Key={'story_id': story_id})
        logger.info(f"Deleted story {story_id}")

    def batch_write_stories(self, entries: List[Tuple[int, Story]]) -> int:
        """
        Write stories to DynamoDB in batches of 25 items.

        Args:
            entries: List of (position, Story) pairs to write

        Returns:
            Count of successfully written stories
        """
        if not entries:
            return 0

        logger.info(f"Writing {len(entries)} stories to DynamoDB")
        success_count = 0

        for i in range(0, len(entries), self.BATCH_SIZE):
            batch = entries[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for position, story in batch:
                        writer.put_item(Item=self._story_to_item(story, position))
                        success_count += 1

            except ClientError as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully wrote {success_count} stories")
        return success_count

    def batch_delete_stories(self, story_ids: List[str]) -> int:
        """
        Delete stories from DynamoDB in batches of 25 items.

        Args:
            story_ids: List of story IDs to delete

        Returns:
            Count of successfully deleted stories
        """
        if not story_ids:
            return 0

        logger.info(f"Deleting {len(story_ids)} stories from DynamoDB")
        success_count = 0

        for i in range(0, len(story_ids), self.BATCH_SIZE):
            batch = story_ids[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for story_id in batch:
                        writer.delete_item(Key={'story_id': story_id})
                        success_count += 1

            except ClientError as e:
                logger.error(
                    f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully deleted {success_count} stories")
        return success_count

    def _item_to_story(self, item: dict) -> Optional[Tuple[int, Story]]:
        """
        Convert DynamoDB item to a (position, Story) pair.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Pair or None if conversion fails
        """
        try:
            address = None
            raw_address = item.get('address')
            if raw_address:
                address = Address(
                    name=raw_address.get('name', ''),
                    address=raw_address.get('address'),
                    longitude=self._to_float(raw_address.get('longitude')),
                    latitude=self._to_float(raw_address.get('latitude')),
                    coordinate_system=raw_address.get('coordinate_system')
                )

            story = Story(
                name=item['name'],
                start_time=item.get('start_time'),
                end_time=item.get('end_time'),
                description=item.get('description'),
                address=address,
                story_id=item['story_id']
            )
            return int(item['position']), story
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to convert item to Story: {e}")
            return None

    def _story_to_item(self, story: Story, position: int) -> dict:
        """
        Convert Story object to DynamoDB item.

        Args:
            story: Story object
            position: Index in the root document

        Returns:
            DynamoDB item dictionary
        """
        item = {
            'story_id': story.story_id,
            'name': story.name,
            'position': position,
            'last_updated': int(time.time())
        }

        # Add optional fields if present
        if story.start_time:
            item['start_time'] = story.start_time
        if story.end_time:
            item['end_time'] = story.end_time
        if story.description:
            item['description'] = story.description
        if story.address:
            address = {'name': story.address.name}
            if story.address.address:
                address['address'] = story.address.address
            if story.address.longitude is not None:
                address['longitude'] = Decimal(str(story.address.longitude))
            if story.address.latitude is not None:
                address['latitude'] = Decimal(str(story.address.latitude))
            if story.address.coordinate_system:
                address['coordinate_system'] = story.address.coordinate_system
            item['address'] = address

        return item

    def _to_float(self, value) -> Optional[float]:
        return float(value) if value is not None else None

    def _stories_differ(self, new: Tuple[int, Story], old: Tuple[int, Story]) -> bool:
        """
        Compare two positioned stories to determine if they differ.

        Args:
            new: (position, Story) about to be written
            old: (position, Story) currently stored

        Returns:
            True if position or content differs, False otherwise
        """
        return new[0] != old[0] or new[1] != old[1]
