import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)

# Constants
GUARDDUTY_SOURCE = 'aws.guardduty'
GUARDDUTY_DETAIL_TYPE = 'GuardDuty Finding'


@dataclass
class DecodedEvent:
    """Parsed CloudWatch event; an empty payload stands for an unreadable record"""
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> Optional[str]:
        return self.payload.get('source')

    @property
    def detail_type(self) -> Optional[str]:
        return self.payload.get('detail-type')

    @property
    def is_empty(self) -> bool:
        return not self.payload


def decode_record(record: Dict[str, Any]) -> DecodedEvent:
    """
    Decode a single Kinesis record into a CloudWatch event

    Args:
        record: Kinesis record carrying base64 data

    Returns:
        DecodedEvent, empty when the record cannot be decoded
    """
    raw_data = None
    try:
        raw_data = record['kinesis']['data']
        payload = json.loads(base64.b64decode(raw_data).decode('utf-8'))
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
        return DecodedEvent(payload)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Event parse failed. {str(e)}")
        logger.warning(f"Skipping: {json.dumps(raw_data)}")
        return DecodedEvent()


def get_kinesis_data(event: Dict[str, Any]) -> List[DecodedEvent]:
    """
    Decode every record of a Kinesis batch

    Args:
        event: Kinesis event as delivered to the Lambda

    Returns:
        One DecodedEvent per record, in record order
    """
    return [decode_record(record) for record in event.get('Records') or []]


def is_guardduty_finding(event: DecodedEvent) -> bool:
    return (event.source is not None and
            event.source == GUARDDUTY_SOURCE and
            event.detail_type == GUARDDUTY_DETAIL_TYPE)


def filter_guardduty_events(events: List[DecodedEvent]) -> List[DecodedEvent]:
    """
    Keep only GuardDuty findings, preserving order

    Args:
        events: Decoded CloudWatch events

    Returns:
        The GuardDuty findings among events
    """
    findings = []
    for event in events:
        if is_guardduty_finding(event):
            logger.debug(f"filter_guardduty_events - including event: {json.dumps(event.payload)}")
            findings.append(event)
        else:
            logger.debug(f"filter_guardduty_events - filtering out event: {json.dumps(event.payload)}")
    return findings


def assemble_batch(events: List[DecodedEvent], source_id: str) -> Optional[Dict[str, Any]]:
    """
    Wrap filtered events into one outbound batch

    Args:
        events: GuardDuty findings for this invocation
        source_id: Identifier of the invoking function

    Returns:
        The collected batch, or None when there is nothing to send
    """
    if not events:
        return None

    return {
        'source_id': source_id,
        'collected_messages': [event.payload for event in events]
    }


def format_messages(event: Dict[str, Any], context: Any) -> Optional[Dict[str, Any]]:
    """Decode, filter and batch the findings carried by a Kinesis event."""
    findings = filter_guardduty_events(get_kinesis_data(event))
    return assemble_batch(findings, context.invoked_function_arn)
