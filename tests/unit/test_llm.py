"""
LLM provider factory tests.

Vendor SDK clients are patched out; only the arguments they are built
with are checked.
"""

from unittest.mock import patch

import pytest

from core.llm import GoogleProvider, MockProvider, create_provider


class TestCreateProvider:

    def test_google_timeout_applied(self):
        provider = create_provider("google", api_key="g-key", timeout=12.5, base_url="https://ignored")

        assert isinstance(provider, GoogleProvider)
        with patch("google.genai.Client") as client_cls:
            provider._get_client()

        kwargs = client_cls.call_args.kwargs
        assert kwargs["api_key"] == "g-key"
        assert kwargs["http_options"].timeout == 12_500

    def test_google_default_timeout(self):
        provider = GoogleProvider(api_key="g-key")
        with patch("google.genai.Client") as client_cls:
            provider._get_client()
        assert client_cls.call_args.kwargs["http_options"].timeout == 60_000

    def test_mock_ignores_transport_options(self):
        provider = create_provider("mock", api_key="k", timeout=5.0)
        assert isinstance(provider, MockProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("nope")
