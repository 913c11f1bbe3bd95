"""
Smoke tests for the deployed platform stack.

These tests make real HTTP requests to the deployed API Gateway stage and
read the function's invocation metrics and logs.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tests.smoke.cloudwatch import log_event_count, settled_invocations

pytestmark = pytest.mark.smoke


def minute_floor(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


class TestActionRoute:
    """Smoke tests for POST /action."""

    def test_rejects_missing_authorization(self, client, function_name, cloudwatch, logs):
        """Requests without an identity token never reach the function."""
        started = minute_floor(datetime.now(timezone.utc))

        response = client.post("action", json={})
        finished = datetime.now(timezone.utc) + timedelta(minutes=1)

        assert response.status_code == 401
        assert settled_invocations(cloudwatch, function_name, started, finished) == 0
        assert log_event_count(logs, function_name, started) == 0

    def test_rejects_invalid_token(self, client):
        """A malformed identity token is denied by the authorizer."""
        response = client.post("action", json={}, headers={"Authorization": "not-a-token"})

        assert response.status_code == 401

    def test_unknown_route(self, client):
        """Only POST /action is exposed."""
        response = client.get("action")

        assert response.status_code in (401, 403)


class TestInvocationMetric:
    """The invocation query must see a known invocation (runs after the denial checks)."""

    def test_direct_invocation_is_counted(self, function_name, cloudwatch, lambda_client):
        started = minute_floor(datetime.now(timezone.utc))

        response = lambda_client.invoke(
            FunctionName=function_name,
            Payload=b'{"httpMethod": "POST", "path": "/action"}',
        )
        finished = datetime.now(timezone.utc) + timedelta(minutes=1)

        assert response["StatusCode"] == 200
        assert settled_invocations(cloudwatch, function_name, started, finished) >= 1
