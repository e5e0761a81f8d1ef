import logging
from typing import Dict, Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from guardduty_collector.stats import arn_to_name

logger = logging.getLogger(__name__)


def check_kinesis_stream(stream_name: str, kinesis: Any = None) -> Optional[Dict[str, Any]]:
    """
    Verify that the source Kinesis stream is active

    Args:
        stream_name: Kinesis stream name
        kinesis: Optional Kinesis client

    Returns:
        None when healthy, otherwise an error report
    """
    if kinesis is None:
        kinesis = boto3.client('kinesis')

    try:
        summary = kinesis.describe_stream_summary(StreamName=stream_name)['StreamDescriptionSummary']
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Health check failed for stream {stream_name}: {str(e)}")
        return {
            'status': 'error',
            'code': 'KINESIS_STREAM_CHECK_FAILED',
            'details': str(e)
        }

    if summary['StreamStatus'] != 'ACTIVE':
        return {
            'status': 'error',
            'code': 'KINESIS_STREAM_NOT_ACTIVE',
            'details': f"Stream {stream_name} is {summary['StreamStatus']}"
        }
    return None


def check_health(event: Dict[str, Any], context: Any) -> Callable[[], Optional[Dict[str, Any]]]:
    """Build the health provider for this invocation's source stream."""
    stream_arn = event.get('KinesisArn')
    if not stream_arn:
        return lambda: None

    stream_name = arn_to_name(stream_arn)
    return lambda: check_kinesis_stream(stream_name)
