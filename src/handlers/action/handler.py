"""
Action Handler

POST /action の Lambda ハンドラ。
Cognito Authorizer を通過したリクエストだけが到達する。

機能:
- 環境変数から 5 つのリソースバインディングを読み込み
- バインディング欠落時は 500 を返す
- リクエストの受付確認を返す (業務ロジックなし)
"""
import os
import json
import logging
from typing import Any

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# 環境変数名
REQUIRED_BINDINGS = (
    'DYNAMODB_TABLE',
    'S3_BUCKET',
    'SNS_TOPIC_ARN',
    'SQS_QUEUE_URL',
    'SECRET_ID',
)


class MissingBindingError(Exception):
    """環境変数バインディング欠落エラー"""

    def __init__(self, names: list[str]):
        super().__init__(f"Missing environment bindings: {', '.join(names)}")
        self.names = names


def load_bindings(environ: dict = None) -> dict[str, str]:
    """環境変数からリソースバインディングを読み込み"""
    environ = os.environ if environ is None else environ
    missing = [name for name in REQUIRED_BINDINGS if not environ.get(name)]
    if missing:
        raise MissingBindingError(missing)
    return {name: environ[name] for name in REQUIRED_BINDINGS}


def create_response(status_code: int, body: dict) -> dict:
    """Lambda レスポンスを作成"""
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*',
        },
        'body': json.dumps(body, ensure_ascii=False),
    }


def lambda_handler(event: dict, context: Any) -> dict:
    """Lambda エントリポイント"""
    request_context = event.get('requestContext') or {}
    request_id = request_context.get('requestId') or getattr(context, 'aws_request_id', None)

    try:
        load_bindings()
    except MissingBindingError as e:
        logger.error(f"Configuration error: {e}")
        return create_response(500, {
            'error': 'Function is misconfigured',
            'missing': e.names,
            'request_id': request_id,
        })

    logger.info(f"Action accepted: request_id={request_id}")
    return create_response(200, {
        'status': 'accepted',
        'request_id': request_id,
        'method': event.get('httpMethod'),
        'path': event.get('path'),
    })
