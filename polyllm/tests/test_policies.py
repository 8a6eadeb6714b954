import os
from unittest.mock import patch

from django.test import SimpleTestCase

from polyllm.service import policies
from polyllm.service.errors import ProviderConfigurationError


class PoliciesTests(SimpleTestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        self.assertIsNone(policies.get_enabled_providers())
        self.assertIsNone(policies.get_default_selection())
        self.assertEqual(policies.get_validation_max_retries(), 3)
        self.assertEqual(policies.get_max_parallel_calls(), 8)
        self.assertEqual(policies.get_request_timeout(), 60.0)

    @patch.dict(os.environ, {"POLYLLM_PROVIDERS": " OpenAI, anthropic ,, "})
    def test_enabled_providers_parsed(self):
        self.assertEqual(policies.get_enabled_providers(), ["openai", "anthropic"])

    @patch.dict(os.environ, {"POLYLLM_DEFAULT_MODEL": "  openai:gpt-4o-mini "})
    def test_default_selection(self):
        self.assertEqual(policies.get_default_selection(), "openai:gpt-4o-mini")

    @patch.dict(os.environ, {"POLYLLM_VALIDATION_MAX_RETRIES": "0", "POLYLLM_MAX_PARALLEL_CALLS": "2"})
    def test_integer_overrides(self):
        self.assertEqual(policies.get_validation_max_retries(), 0)
        self.assertEqual(policies.get_max_parallel_calls(), 2)

    @patch.dict(os.environ, {"POLYLLM_VALIDATION_MAX_RETRIES": "many"})
    def test_non_integer_raises(self):
        with self.assertRaises(ProviderConfigurationError):
            policies.get_validation_max_retries()

    @patch.dict(os.environ, {"POLYLLM_MAX_PARALLEL_CALLS": "0"})
    def test_below_minimum_raises(self):
        with self.assertRaises(ProviderConfigurationError):
            policies.get_max_parallel_calls()

    @patch.dict(os.environ, {"POLYLLM_REQUEST_TIMEOUT": "soon"})
    def test_bad_timeout_raises(self):
        with self.assertRaises(ProviderConfigurationError):
            policies.get_request_timeout()
