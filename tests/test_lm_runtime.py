import unittest
from unittest import mock

from devlab.core.config import GenerativeConfig
from devlab.core.errors import CredentialError
from devlab.core.lm_runtime import build_generative_lm, credential_problem, mask_key, require_credential

VALID_KEY = "AIzaSy" + "k" * 33


class CredentialTests(unittest.TestCase):
    def test_problems_are_named(self) -> None:
        self.assertEqual(credential_problem(None), "missing")
        self.assertEqual(credential_problem("   "), "missing")
        self.assertEqual(credential_problem("your-gemini-api-key-here-please"), "placeholder detected")
        self.assertEqual(credential_problem("CHANGEME-0000000000000000"), "placeholder detected")
        self.assertEqual(credential_problem("abc123"), "too short")
        self.assertIsNone(credential_problem(VALID_KEY))

    def test_require_credential_strips(self) -> None:
        self.assertEqual(require_credential(f"  {VALID_KEY}\n", service="generative"), VALID_KEY)

    def test_require_credential_raises(self) -> None:
        with self.assertRaises(CredentialError) as ctx:
            require_credential("short", service="generative")
        self.assertIn("generative", str(ctx.exception))

    def test_require_credential_rejects_missing_key(self) -> None:
        for value in (None, "", "  "):
            with self.subTest(value=value), self.assertRaises(CredentialError) as ctx:
                require_credential(value, service="sandbox")
            self.assertEqual(str(ctx.exception), "Invalid sandbox API key: missing")

    def test_mask_key(self) -> None:
        self.assertEqual(mask_key(None), "N/A")
        self.assertEqual(mask_key(VALID_KEY), "AIzaSy...")


class BuildGenerativeLMTests(unittest.TestCase):
    @mock.patch("devlab.core.lm_runtime.dspy")
    def test_builds_lm_from_config(self, mock_dspy) -> None:
        config = GenerativeConfig(
            model="gemini/gemini-1.5-flash",
            api_key_env=None,
            temperature=0.2,
            max_tokens=2048,
            api_base="https://proxy.local",
            top_p=0.9,
        )

        handle = build_generative_lm(config, api_key=VALID_KEY)

        self.assertIs(handle, mock_dspy.LM.return_value)
        mock_dspy.LM.assert_called_once_with(
            model="gemini/gemini-1.5-flash",
            api_key=VALID_KEY,
            temperature=0.2,
            max_tokens=2048,
            api_base="https://proxy.local",
            top_p=0.9,
        )

    @mock.patch("devlab.core.lm_runtime.dspy")
    def test_optional_settings_are_omitted(self, mock_dspy) -> None:
        build_generative_lm(GenerativeConfig(api_key=VALID_KEY, api_key_env=None))

        kwargs = mock_dspy.LM.call_args.kwargs
        self.assertEqual(set(kwargs), {"model", "api_key"})

    @mock.patch("devlab.core.lm_runtime.dspy")
    def test_placeholder_key_never_reaches_dspy(self, mock_dspy) -> None:
        with self.assertRaises(CredentialError):
            build_generative_lm(GenerativeConfig(api_key="your-key", api_key_env=None))
        mock_dspy.LM.assert_not_called()


if __name__ == "__main__":
    unittest.main()
