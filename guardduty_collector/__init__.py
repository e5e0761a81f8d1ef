from guardduty_collector.collector import CweCollector
from guardduty_collector.credentials import CredentialCache, CredentialPair, DecryptionError
from guardduty_collector.records import (
    DecodedEvent,
    assemble_batch,
    filter_guardduty_events,
    format_messages,
    get_kinesis_data,
)
from guardduty_collector.stats import get_statistics_functions

__all__ = [
    "CredentialCache",
    "CredentialPair",
    "CweCollector",
    "DecodedEvent",
    "DecryptionError",
    "assemble_batch",
    "filter_guardduty_events",
    "format_messages",
    "get_kinesis_data",
    "get_statistics_functions",
]
