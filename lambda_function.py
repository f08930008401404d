"""AWS Lambda handler for the LifeFlow story list."""
import json
import logging
import os
import time
from typing import Any, Dict, List

from lifeflow.layout import annotate_same_day, move_down, move_up, search_stories
from lifeflow.models import SequencedStory, Story
from lifeflow.story_processor import StoryProcessor
from lifeflow.story_sequencer import StorySequencer
from storage.story_repository import StoryRepository


ACTIONS = ('load', 'resort', 'save', 'move_up', 'move_down', 'search')


class BadRequest(ValueError):
    """Raised when the invocation payload cannot be served."""


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any], start_time: float) -> Dict[str, Any]:
    body['duration_seconds'] = round(time.time() - start_time, 2)
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def _render(processor: StoryProcessor, sequence: List[SequencedStory]) -> Dict[str, Any]:
    same_day = annotate_same_day(sequence)
    return {
        'stories': [processor.to_sequenced_record(item) for item in sequence],
        'same_day': {
            'is_same_day': same_day.is_same_day,
            'positions': same_day.positions
        }
    }


def _payload_stories(processor: StoryProcessor, event: Dict[str, Any]):
    records = event.get('stories')
    if not isinstance(records, list):
        raise BadRequest("'stories' must be a list")
    return processor.process_stories(records)


def _swap_in_document(stored: List[Story], first: Story, second: Story) -> List[Story]:
    """Exchange the document positions of two stored stories."""
    document = list(stored)
    i = next(n for n, story in enumerate(document) if story.story_id == first.story_id)
    j = next(n for n, story in enumerate(document) if story.story_id == second.story_id)
    document[i], document[j] = document[j], document[i]
    return document


def _payload_index(event: Dict[str, Any]) -> int:
    index = event.get('index')
    if not isinstance(index, int) or isinstance(index, bool):
        raise BadRequest("'index' must be an integer")
    return index


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the story list.

    Args:
        event: Invocation payload with an 'action' and its arguments
        context: Lambda context object

    Returns:
        Response dict with statusCode and the sequenced stories
    """
    table_name = os.environ.get('TABLE_NAME', 'lifeflow-stories')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = (event or {}).get('action', 'load')
    logger.info(
        f"Lambda execution started",
        extra={'table_name': table_name, 'action': action}
    )

    if action not in ACTIONS:
        logger.warning(f"Unknown action: {action}")
        return _response(400, {
            'message': 'Unknown action',
            'error': f"action must be one of {', '.join(ACTIONS)}"
        }, start_time)

    processor = StoryProcessor()
    sequencer = StorySequencer()

    try:
        if action == 'resort':
            stories = _payload_stories(processor, event)
            sequence = sequencer.sequence(stories)
            return _response(200, _render(processor, sequence), start_time)

        if action == 'search':
            stories = _payload_stories(processor, event)
            sequence = sequencer.sequence(stories)
            matches = search_stories(sequence, str(event.get('query') or ''))
            return _response(200, _render(processor, matches), start_time)

        repository = StoryRepository(table_name=table_name)

        if action == 'load':
            logger.info("Loading stories from DynamoDB")
            sequence = sequencer.sequence(repository.load_all())
            return _response(200, _render(processor, sequence), start_time)

        if action == 'save':
            stories = processor.assign_ids(_payload_stories(processor, event))
            sequence = sequencer.sequence(stories)
            logger.info("Synchronizing stories with DynamoDB")
            sync_result = repository.sync_stories(stories)
            body = _render(processor, sequence)
            body['statistics'] = {
                'stories_added': sync_result.added,
                'stories_updated': sync_result.updated,
                'stories_deleted': sync_result.deleted
            }
            body['errors'] = sync_result.errors
            status_code = 500 if sync_result.errors else 200
            return _response(status_code, body, start_time)

        # move_up / move_down work on the stored order
        index = _payload_index(event)
        stored = repository.load_all()
        sequence = sequencer.sequence(stored)
        if not 0 <= index < len(sequence):
            raise BadRequest(f"index {index} out of range for {len(sequence)} stories")
        if sequence[index].has_date:
            raise BadRequest("only undated stories can be moved")

        if action == 'move_up':
            moved, neighbour = move_up(sequence, index), index - 1
        else:
            moved, neighbour = move_down(sequence, index), index + 1

        errors = []
        if 0 <= neighbour < len(sequence):
            document = _swap_in_document(
                stored, sequence[index].story, sequence[neighbour].story
            )
            errors = repository.sync_stories(document).errors
        body = _render(processor, moved)
        body['errors'] = errors
        return _response(500 if errors else 200, body, start_time)

    except BadRequest as e:
        logger.warning(f"Rejected {action} request: {e}")
        return _response(400, {
            'message': 'Bad request',
            'error': str(e)
        }, start_time)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': f"Failed to {action.replace('_', ' ')} stories",
            'error': str(e),
            'error_type': type(e).__name__
        }, start_time)

    finally:
        logger.info(
            f"Lambda execution completed",
            extra={'duration_seconds': round(time.time() - start_time, 2)}
        )
