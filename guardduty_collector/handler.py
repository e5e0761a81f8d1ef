import json
import logging
import os
from typing import Dict, Any, Callable

from guardduty_collector.checkin import check_health
from guardduty_collector.collector import CweCollector
from guardduty_collector.credentials import CredentialCache, DecryptionError
from guardduty_collector.environment import env_var_migration, repair_legacy_alias
from guardduty_collector.records import format_messages
from guardduty_collector.stats import get_statistics_functions

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Populated on the first invocation of a cold start, read-only afterwards
CREDENTIAL_CACHE = CredentialCache()


def handle(event: Dict[str, Any],
           context: Any,
           credential_cache: CredentialCache,
           collector_class: Callable[..., Any]) -> Any:
    """
    Run one collector invocation

    Args:
        event: Kinesis batch or scheduled checkin event
        context: Lambda context
        credential_cache: Process-wide credential cache
        collector_class: Delivery delegate factory

    Returns:
        The delegate's result

    Raises:
        DecryptionError: If the credentials cannot be decrypted
    """
    try:
        env_var_migration(event)
    except Exception as e:
        logger.error(f"Environment migration failed, continuing: {str(e)}")

    credentials = credential_cache.get_decrypted_credentials()

    repair_legacy_alias()

    collector = collector_class(
        context,
        credentials,
        format_messages,
        [check_health(event, context)],
        get_statistics_functions(event)
    )

    logger.debug(f"Received event: {json.dumps(event)}")
    return collector.handle_event(event)


def lambda_handler(event: Dict[str, Any], context: Any) -> Any:
    """
    Main Lambda handler function

    Args:
        event: Kinesis event containing CloudWatch events
        context: Lambda context

    Returns:
        The delivery delegate's result
    """
    try:
        return handle(event, context, CREDENTIAL_CACHE, CweCollector)

    except DecryptionError as e:
        logger.error(f"Credential decryption error: {str(e)}")
        raise

    except Exception as e:
        logger.error(f"Collector invocation failed: {str(e)}")
        raise
