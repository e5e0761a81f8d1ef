import logging
import os
from typing import Dict, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Constants
UPDATE_CONFIG_NAME = 'configs/lambda/al-cwe-collector.json'
APPLICATION_ID = 'guardduty'
UNREGISTERED_COLLECTOR_ID = 'NA'


def set_env(variables: Dict[str, Any], lambda_client: Any = None) -> bool:
    """
    Merge variables into this function's persisted environment

    Args:
        variables: Environment variables to add or overwrite
        lambda_client: Optional Lambda client

    Returns:
        bool: True if the configuration was updated
    """
    function_name = os.environ.get('AWS_LAMBDA_FUNCTION_NAME')
    try:
        if lambda_client is None:
            lambda_client = boto3.client('lambda')
        config = lambda_client.get_function_configuration(FunctionName=function_name)
        current = config.get('Environment', {}).get('Variables', {})
        merged = dict(current)
        merged.update({key: str(value) for key, value in variables.items() if value is not None})
        lambda_client.update_function_configuration(
            FunctionName=function_name,
            Environment={'Variables': merged}
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to update environment variables {sorted(variables)}: {str(e)}")
        return False

    return True


def env_var_migration(event: Dict[str, Any], lambda_client: Any = None) -> None:
    """
    Add environment variables that older collector deployments lack

    The collector role cannot always set its own variables, so every
    failure here is logged and the invocation carries on.

    Args:
        event: Invocation event, optionally carrying StackName
        lambda_client: Optional Lambda client
    """
    if not os.environ.get('aws_lambda_update_config_name'):
        os.environ['aws_lambda_update_config_name'] = UPDATE_CONFIG_NAME
        if not set_env({'aws_lambda_update_config_name': UPDATE_CONFIG_NAME}, lambda_client):
            logger.error("CWE error while adding aws_lambda_update_config_name in environment variable")

    if (not os.environ.get('stack_name') and event.get('StackName')) or not os.environ.get('al_application_id'):
        if not set_env({'stack_name': event.get('StackName'), 'al_application_id': APPLICATION_ID}, lambda_client):
            logger.error("CWE error while adding stack_name in environment variable")


def repair_legacy_alias() -> bool:
    """
    Restore azcollect_api from the misspelled azollect_api variable

    Collectors repaired this way skip registration (collector_id NA).

    Returns:
        bool: True if the alias was applied
    """
    if os.environ.get('azollect_api') and not os.environ.get('azcollect_api'):
        os.environ['collector_id'] = UNREGISTERED_COLLECTOR_ID
        os.environ['azcollect_api'] = os.environ['azollect_api']
        logger.info("Copied azollect_api into azcollect_api")
        return True
    return False
