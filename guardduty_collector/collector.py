import json
import logging
import os
from typing import Dict, Any, Callable, List, Optional, Sequence

import boto3

from guardduty_collector.credentials import CredentialPair

logger = logging.getLogger(__name__)

# Environment variables
DELIVERY_STREAM_ENV = 'DELIVERY_STREAM_NAME'

# Firehose limits
MAX_RECORD_BYTES = 1000 * 1024
MAX_BATCH_RECORDS = 500
MAX_BATCH_BYTES = 4 * 1024 * 1024

FormatFunction = Callable[[Dict[str, Any], Any], Optional[Dict[str, Any]]]
HealthProvider = Callable[[], Optional[Dict[str, Any]]]
StatsProvider = Callable[[], Dict[str, Any]]


class DeliveryError(Exception):
    """Custom exception for records the delivery stream did not accept"""
    pass


class CweCollector:
    """
    Delivery delegate for collected GuardDuty findings.

    Regular stream batches go through the format function and the
    resulting batch is written to the delivery stream. Scheduled checkin
    events run the health and statistics providers instead.
    """

    def __init__(self,
                 context: Any,
                 credentials: CredentialPair,
                 format_function: FormatFunction,
                 health_providers: Sequence[HealthProvider] = (),
                 stats_providers: Sequence[StatsProvider] = (),
                 firehose_client: Any = None):
        self.context = context
        self.credentials = credentials
        self.format_function = format_function
        self.health_providers = list(health_providers)
        self.stats_providers = list(stats_providers)
        self._firehose = firehose_client

    @staticmethod
    def is_checkin(event: Dict[str, Any]) -> bool:
        return event.get('RequestType') == 'ScheduledEvent' and event.get('Type') == 'Checkin'

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        if self.is_checkin(event):
            return self.checkin()
        return self.process(event)

    def process(self, event: Dict[str, Any]) -> Dict[str, Any]:
        batch = self.format_function(event, self.context)
        if batch is None:
            logger.info("No GuardDuty findings to send")
            return {'sent': 0}

        sent = self.send(batch)
        logger.info(f"Sent {sent} GuardDuty findings")
        return {'sent': sent}

    def encode(self, source_id: str, findings: List[Dict[str, Any]]) -> bytes:
        message = {
            'access_key_id': self.credentials.access_key_id,
            'collected_batch': {
                'source_id': source_id,
                'collected_messages': findings
            }
        }
        return (json.dumps(message) + "\n").encode('utf-8')

    def split_findings(self, batch: Dict[str, Any]) -> List[List[Dict[str, Any]]]:
        """
        Pack findings, in order, into groups whose encoded record fits Firehose

        A single finding that cannot fit in any record is logged and dropped.

        Args:
            batch: Collected batch from the format function

        Returns:
            List of finding groups, one per delivery record
        """
        overhead = len(self.encode(batch['source_id'], []))
        groups: List[List[Dict[str, Any]]] = []
        group: List[Dict[str, Any]] = []
        group_bytes = overhead

        for finding in batch['collected_messages']:
            # ", " separator between list items
            size = len(json.dumps(finding).encode('utf-8')) + 2
            if overhead + size > MAX_RECORD_BYTES:
                logger.error(f"Dropping finding {finding.get('id')} larger than {MAX_RECORD_BYTES} bytes")
                continue
            if group and group_bytes + size > MAX_RECORD_BYTES:
                groups.append(group)
                group, group_bytes = [], overhead
            group.append(finding)
            group_bytes += size

        if group:
            groups.append(group)
        return groups

    def send(self, batch: Dict[str, Any]) -> int:
        """
        Write a batch to the delivery stream

        Args:
            batch: Collected batch from the format function

        Returns:
            int: Number of findings delivered

        Raises:
            DeliveryError: If Firehose rejects any record
        """
        if self._firehose is None:
            self._firehose = boto3.client('firehose')

        groups = self.split_findings(batch)
        stream_name = os.environ.get(DELIVERY_STREAM_ENV)

        request: List[bytes] = []
        request_bytes = 0
        for group in groups:
            record = self.encode(batch['source_id'], group)
            if request and (len(request) >= MAX_BATCH_RECORDS or request_bytes + len(record) > MAX_BATCH_BYTES):
                self._put_records(stream_name, request)
                request, request_bytes = [], 0
            request.append(record)
            request_bytes += len(record)

        if request:
            self._put_records(stream_name, request)

        return sum(len(group) for group in groups)

    def _put_records(self, stream_name: Optional[str], records: List[bytes]) -> None:
        response = self._firehose.put_record_batch(
            DeliveryStreamName=stream_name,
            Records=[{'Data': record} for record in records]
        )
        failed = response.get('FailedPutCount', 0)
        if failed:
            raise DeliveryError(f"Firehose rejected {failed} of {len(records)} records")

    def checkin(self) -> Dict[str, Any]:
        errors: List[Dict[str, Any]] = []
        for provider in self.health_providers:
            result = provider()
            if result is not None:
                errors.append(result)

        statistics = [provider() for provider in self.stats_providers]
        if errors:
            logger.warning(f"Checkin reported health errors: {json.dumps(errors)}")

        return {
            'status': 'error' if errors else 'ok',
            'errors': errors,
            'statistics': statistics
        }
