"""Smoke Test CloudWatch Helper Unit Tests"""
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from botocore.stub import ANY, Stubber

from tests.smoke.cloudwatch import METRIC_DELAY, log_event_count, settled_invocations

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
END = START + timedelta(minutes=1)


class FakeClock:
    """sleep で進む時計"""

    def __init__(self, now: datetime):
        self.current = now
        self.sleeps = 0

    def now(self) -> datetime:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps += 1
        self.current += timedelta(seconds=seconds)


def metric_response(*sums):
    return {
        "Label": "Invocations",
        "Datapoints": [{"Timestamp": START, "Sum": value, "Unit": "Count"} for value in sums],
    }


@pytest.fixture
def cloudwatch():
    client = boto3.client(
        "cloudwatch",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber


class TestSettledInvocations:
    """settled_invocations のテスト"""

    def test_empty_result_before_delay_keeps_polling(self, cloudwatch):
        """正常: 遅延を過ぎるまで空の結果では終わらず、後から届いた件数を返す"""
        # Arrange
        client, stubber = cloudwatch
        stubber.add_response("get_metric_statistics", metric_response(), {
            "Namespace": "AWS/Lambda",
            "MetricName": "Invocations",
            "Dimensions": [{"Name": "FunctionName", "Value": "fn"}],
            "StartTime": START,
            "EndTime": END,
            "Period": 60,
            "Statistics": ["Sum"],
        })
        stubber.add_response("get_metric_statistics", metric_response(1.0), {
            "Namespace": ANY, "MetricName": ANY, "Dimensions": ANY,
            "StartTime": ANY, "EndTime": ANY, "Period": ANY, "Statistics": ANY,
        })
        clock = FakeClock(END)

        # Act
        total = settled_invocations(client, "fn", START, END, now=clock.now, sleep=clock.sleep)

        # Assert
        assert total == 1.0
        assert clock.sleeps == 1

    def test_zero_only_after_delay(self, cloudwatch):
        """正常: 0 件は遅延を過ぎた時点でのみ確定する"""
        # Arrange
        client, stubber = cloudwatch
        polls = int(METRIC_DELAY.total_seconds() // 30) + 1
        for _ in range(polls):
            stubber.add_response("get_metric_statistics", metric_response())
        clock = FakeClock(END)

        # Act
        total = settled_invocations(client, "fn", START, END, now=clock.now, sleep=clock.sleep)

        # Assert
        assert total == 0
        assert clock.now() >= END + METRIC_DELAY
        stubber.assert_no_pending_responses()

    def test_settled_window_is_queried_once(self, cloudwatch):
        """正常: すでに遅延を過ぎた窓は 1 回の問い合わせで確定"""
        client, stubber = cloudwatch
        stubber.add_response("get_metric_statistics", metric_response())
        clock = FakeClock(END + METRIC_DELAY)

        total = settled_invocations(client, "fn", START, END, now=clock.now, sleep=clock.sleep)

        assert total == 0
        assert clock.sleeps == 0


class TestLogEventCount:
    """log_event_count のテスト"""

    @pytest.fixture
    def logs(self):
        client = boto3.client(
            "logs",
            region_name="us-east-1",
            aws_access_key_id="testing",
            aws_secret_access_key="testing",
        )
        with Stubber(client) as stubber:
            yield client, stubber

    def test_counts_events(self, logs):
        """正常: 開始以降のログイベント数"""
        client, stubber = logs
        stubber.add_response(
            "filter_log_events",
            {"events": [{"message": "START"}, {"message": "END"}]},
            {"logGroupName": "/aws/lambda/fn", "startTime": int(START.timestamp() * 1000)},
        )

        assert log_event_count(client, "fn", START) == 2

    def test_missing_log_group_means_never_invoked(self, logs):
        """正常: ロググループがなければ 0 件"""
        client, stubber = logs
        stubber.add_client_error("filter_log_events", service_error_code="ResourceNotFoundException")

        assert log_event_count(client, "fn", START) == 0
