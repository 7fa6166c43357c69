"""
Tests for the registry presence check
"""

from unittest.mock import MagicMock, patch

import httpx

from model_optimizer.registry import RegistryClient


def make_response(status_code: int, text: str = ""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


def test_check_found():
    with patch('httpx.get', return_value=make_response(200, '{"tags": []}')) as mock_get:
        assert RegistryClient().check("codellama") is True
    assert mock_get.call_args[0][0] == "https://ollama.com/api/tags/codellama"


def test_check_not_found():
    with patch('httpx.get', return_value=make_response(404, "not found")):
        assert RegistryClient().check("nope") is False


def test_check_empty_body():
    with patch('httpx.get', return_value=make_response(200, "  ")):
        assert RegistryClient().check("codellama") is False


def test_check_network_error():
    with patch('httpx.get', side_effect=httpx.ConnectError("offline")):
        assert RegistryClient().check("codellama") is False


def test_check_all_and_custom_url():
    client = RegistryClient("http://localhost:8080/")
    with patch('httpx.get', side_effect=[make_response(200, "{}"), make_response(404)]) as mock_get:
        result = client.check_all(["a", "b"])

    assert result == {"a": True, "b": False}
    assert mock_get.call_args_list[0][0][0] == "http://localhost:8080/api/tags/a"
