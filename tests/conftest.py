"""Shared fixtures for guardduty_collector tests."""

import base64
import json
import os
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:guardduty-collector"
STREAM_ARN = "arn:aws:kinesis:us-east-1:123456789012:stream/guardduty-events"

os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

COLLECTOR_ENV_VARS = [
    "aims_access_key_id",
    "aims_secret_key",
    "aws_lambda_update_config_name",
    "stack_name",
    "al_application_id",
    "azollect_api",
    "azcollect_api",
    "collector_id",
    "DELIVERY_STREAM_NAME",
]


def kinesis_record(data: Any) -> Dict[str, Any]:
    """Build a Kinesis record; dicts are JSON encoded, strings are used as raw data."""
    if isinstance(data, dict):
        encoded = base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")
    else:
        encoded = data
    return {
        "eventSource": "aws:kinesis",
        "kinesis": {"partitionKey": "pk", "data": encoded},
    }


def kinesis_event(*payloads: Any) -> Dict[str, List[Dict[str, Any]]]:
    return {"Records": [kinesis_record(payload) for payload in payloads]}


def guardduty_finding(finding_id: str = "finding-1") -> Dict[str, Any]:
    return {
        "version": "0",
        "id": finding_id,
        "source": "aws.guardduty",
        "detail-type": "GuardDuty Finding",
        "detail": {"severity": 5, "type": "Recon:EC2/PortProbeUnprotectedPort"},
    }


def ec2_state_change() -> Dict[str, Any]:
    return {
        "version": "0",
        "id": "state-1",
        "source": "aws.ec2",
        "detail-type": "EC2 Instance State-change Notification",
        "detail": {"state": "running"},
    }


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fake AWS credentials so no test reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture(autouse=True)
def clean_collector_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without collector configuration in the environment."""
    for name in COLLECTOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def lambda_context() -> SimpleNamespace:
    return SimpleNamespace(
        invoked_function_arn=FUNCTION_ARN,
        function_name="guardduty-collector",
        aws_request_id="request-1",
    )
