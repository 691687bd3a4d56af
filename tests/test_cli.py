"""Unit tests for main.py -- the check-media report."""

from unittest.mock import MagicMock

from main import check_media
from media.client import MediaError


def _client(**attrs) -> MagicMock:
    client = MagicMock()
    client.is_configured = True
    client.ping.return_value = {"status": "ok"}
    client.list_resources.return_value = []
    for name, value in attrs.items():
        setattr(client, name, value)
    return client


def test_check_media_success(capsys):
    client = _client()
    assert check_media(client, "cars") == 0
    client.list_resources.assert_called_once_with(prefix="cars", max_results=1)
    assert "reachable" in capsys.readouterr().out


def test_check_media_missing_credentials(capsys):
    client = _client(is_configured=False)
    assert check_media(client, "cars") == 1
    client.ping.assert_not_called()
    assert "credentials are missing" in capsys.readouterr().out


def test_check_media_ping_failure():
    client = _client()
    client.ping.side_effect = MediaError("Image host ping request failed")
    assert check_media(client, "cars") == 1
