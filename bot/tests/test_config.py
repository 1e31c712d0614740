import os
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

repo_root = Path(__file__).resolve().parents[2]
sys.path.append(str(repo_root / "bot"))

from stacksave.core import Settings
from stacksave.core.config import PLACEHOLDER_PRIVATE_KEY

CONTRACT_ADDRESS = "0x" + "ab" * 20


class SettingsTests(unittest.TestCase):
    def test_admin_ids_are_split_and_trimmed(self):
        config = Settings(ADMIN_IDS=" 12345, alice ,,")
        self.assertEqual(config.admin_ids, ["12345", "alice"])

    def test_admin_phone_numbers_alias(self):
        config = Settings(ADMIN_PHONE_NUMBERS="628111,628222")
        self.assertEqual(config.admin_ids, ["628111", "628222"])

    def test_placeholder_key_is_not_configured(self):
        config = Settings(PRIVATE_KEY=PLACEHOLDER_PRIVATE_KEY, STAKING_CONTRACT_ADDRESS=CONTRACT_ADDRESS)
        self.assertFalse(config.blockchain_configured)

    def test_contract_address_is_required(self):
        config = Settings(PRIVATE_KEY="0x" + "11" * 32, STAKING_CONTRACT_ADDRESS="")
        self.assertFalse(config.blockchain_configured)

    def test_configured_blockchain(self):
        config = Settings(PRIVATE_KEY="0x" + "11" * 32, STAKING_CONTRACT_ADDRESS=CONTRACT_ADDRESS)
        self.assertTrue(config.blockchain_configured)

    def test_unrecognized_provider_does_not_stop_startup(self):
        with patch.dict(os.environ, {"LLM_PROVIDER": "gemini"}):
            config = Settings()
        self.assertEqual(config.LLM_PROVIDER, "gemini")

    def test_rpc_url_alias(self):
        config = Settings(BASE_SEPOLIA_RPC_URL="https://rpc.example.org")
        self.assertEqual(config.RPC_URL, "https://rpc.example.org")


if __name__ == "__main__":
    unittest.main()
