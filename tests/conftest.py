import pytest
from unittest.mock import AsyncMock, MagicMock
import sys
import os

# Add project root to sys.path so we can import storyboard
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from storyboard.config import Config


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to provide a credential without touching the real environment."""
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "fake_key")


@pytest.fixture
def mock_genai_client(mocker, mock_env):
    """Fixture to mock the Google GenAI Client, with an awaitable generate_content."""
    mock_client = mocker.patch('google.genai.Client')
    mock_client.return_value.aio.models.generate_content = AsyncMock()
    return mock_client


def image_response(data=b"fake_png", mime_type="image/png"):
    part = MagicMock()
    part.inline_data.data = data
    part.inline_data.mime_type = mime_type
    response = MagicMock()
    response.parts = [part]
    return response


def text_response(text):
    response = MagicMock()
    response.text = text
    return response
