import functools
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Callable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Constants
KINESIS_NAMESPACE = 'AWS/Kinesis'
METRICS_PERIOD = 900  # seconds
KINESIS_METRICS = [
    'IncomingRecords',
    'IncomingBytes',
    'ReadProvisionedThroughputExceeded',
    'WriteProvisionedThroughputExceeded'
]


def arn_to_name(arn: str) -> Optional[str]:
    """
    Extract the short resource name from an ARN

    Args:
        arn: e.g. arn:aws:kinesis:us-east-1:123456789012:stream/my-stream

    Returns:
        The resource name (my-stream), or None if arn is not an ARN
    """
    parts = arn.split(':')
    if len(parts) <= 3:
        return None
    return parts[-1].split('/')[-1]


def get_kinesis_metrics(stream_name: str, metric_name: str, cloudwatch: Any = None) -> Dict[str, Any]:
    """
    Fetch the summed value of a Kinesis metric over the last period

    Args:
        stream_name: Kinesis stream name
        metric_name: CloudWatch metric name
        cloudwatch: Optional CloudWatch client

    Returns:
        Dict containing the metric report for checkin
    """
    if cloudwatch is None:
        cloudwatch = boto3.client('cloudwatch')

    end_time = datetime.utcnow()
    report = {'StreamName': stream_name, 'Label': metric_name}
    try:
        response = cloudwatch.get_metric_statistics(
            Namespace=KINESIS_NAMESPACE,
            MetricName=metric_name,
            Dimensions=[{'Name': 'StreamName', 'Value': stream_name}],
            StartTime=end_time - timedelta(seconds=METRICS_PERIOD),
            EndTime=end_time,
            Period=METRICS_PERIOD,
            Statistics=['Sum']
        )
        report['Datapoints'] = [
            {'Timestamp': point['Timestamp'].isoformat(), 'Sum': point['Sum'], 'Unit': point.get('Unit')}
            for point in response.get('Datapoints', [])
        ]
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to get {metric_name} for stream {stream_name}: {str(e)}")
        report['Error'] = str(e)

    return {'Kinesis': report}


def get_statistics_functions(event: Dict[str, Any]) -> List[Callable[[], Dict[str, Any]]]:
    """
    Build the metric providers reported at checkin

    Args:
        event: Invocation event, optionally carrying KinesisArn

    Returns:
        One provider per Kinesis metric, or [] without a stream ARN
    """
    if not event.get('KinesisArn'):
        return []

    kinesis_name = arn_to_name(event['KinesisArn'])
    return [functools.partial(get_kinesis_metrics, kinesis_name, metric_name)
            for metric_name in KINESIS_METRICS]
