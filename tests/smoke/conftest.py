"""Pytest configuration for smoke tests against a deployed stack."""

import os

import boto3
import httpx
import pytest

API_ENDPOINT = os.getenv("API_ENDPOINT")
FUNCTION_NAME = os.getenv("FUNCTION_NAME")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")


def pytest_collection_modifyitems(config, items):
    """Skip smoke tests unless a deployed endpoint is provided."""
    if API_ENDPOINT:
        return
    skip = pytest.mark.skip(reason="API_ENDPOINT is not set")
    for item in items:
        if item.get_closest_marker("smoke"):
            item.add_marker(skip)


@pytest.fixture
def api_url():
    return API_ENDPOINT


@pytest.fixture
def function_name():
    """Deployed function name (required alongside API_ENDPOINT)."""
    if not FUNCTION_NAME:
        pytest.fail("FUNCTION_NAME must be set together with API_ENDPOINT")
    return FUNCTION_NAME


@pytest.fixture
def client(api_url):
    """HTTP client for the deployed API."""
    with httpx.Client(base_url=api_url, timeout=30.0) as client:
        yield client


@pytest.fixture(scope="session")
def cloudwatch():
    return boto3.client("cloudwatch", region_name=AWS_REGION)


@pytest.fixture(scope="session")
def logs():
    return boto3.client("logs", region_name=AWS_REGION)


@pytest.fixture(scope="session")
def lambda_client():
    return boto3.client("lambda", region_name=AWS_REGION)
