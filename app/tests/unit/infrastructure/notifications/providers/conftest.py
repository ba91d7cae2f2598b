"""Fixtures for notification provider tests."""

from unittest.mock import MagicMock, Mock

import pytest
import requests


@pytest.fixture
def response_factory():
    """Factory for mock ``requests`` responses."""

    def _factory(status_code=200, json_body=None, text="", headers=None):
        response = Mock(spec=requests.Response)
        response.status_code = status_code
        response.text = text
        response.headers = headers or {}
        if json_body is None:
            response.json.side_effect = ValueError("no json")
        else:
            response.json.return_value = json_body
        return response

    return _factory


@pytest.fixture
def mock_session(response_factory):
    """Mock requests session answering 200 to every call."""
    session = MagicMock(spec=requests.Session)
    session.post.return_value = response_factory(200, {})
    session.get.return_value = response_factory(200, {})
    return session
