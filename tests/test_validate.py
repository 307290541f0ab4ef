import json
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

import tomli_w
from solders.pubkey import Pubkey

from fakes import SAMPLE_KEYS, sample_config
from swapforge.constants import SWAP_PROGRAM_ID
from swapforge.errors import ValidationError
from swapforge.manifest import load_config_file, load_deploy_config, parse_deploy_config
from swapforge.oracle import OraclePriority
from swapforge.validate import pair_key, parse_slope, validate_config


class ValidateConfigTests(unittest.TestCase):
    def test_sample_is_valid(self) -> None:
        self.assertEqual(validate_config(sample_config()), [])

    def test_missing_and_unknown_keys(self) -> None:
        config = sample_config()
        del config["fees"]
        config["extra"] = 1
        errors = validate_config(config)
        self.assertIn("Missing required key: fees", errors)
        self.assertIn("Unknown top-level key: extra", errors)

    def test_network(self) -> None:
        config = sample_config()
        config["network"] = "moonnet"
        self.assertTrue(any(e.startswith("network must be one of") for e in validate_config(config)))

    def test_fee_ratios(self) -> None:
        config = sample_config()
        config["fees"]["tradeFeeNumerator"] = 2000
        config["fees"]["withdrawFeeDenominator"] = 0
        config["fees"]["adminTradeFeeNumerator"] = -1
        errors = validate_config(config)
        self.assertIn("fees.tradeFeeNumerator must be <= fees.tradeFeeDenominator", errors)
        self.assertIn("fees.withdrawFeeDenominator must be > 0", errors)
        self.assertIn("fees.adminTradeFeeNumerator must be a u64 integer", errors)

    def test_duplicate_pair_either_order(self) -> None:
        config = sample_config()
        config["stableSwapPools"].append(
            {"tokenA": "USDC", "tokenB": "SOL", "slope": 1, "swapOutLimitPercentage": 1}
        )
        errors = validate_config(config)
        self.assertIn("stableSwapPools[1] (USDC-SOL): duplicate pool pair", errors)

    def test_same_token_pool(self) -> None:
        config = sample_config()
        config["swapPools"][0]["tokenB"] = "SOL"
        self.assertIn("swapPools[0] (SOL-SOL): tokenA and tokenB must differ", validate_config(config))

    def test_unknown_token(self) -> None:
        config = sample_config()
        config["swapPools"][0]["tokenB"] = "BTC"
        self.assertIn("swapPools[0] (SOL-BTC): unknown token BTC", validate_config(config))

    def test_pool_tokens_must_be_listed(self) -> None:
        config = sample_config()
        del config["tokens"]
        errors = validate_config(config)
        self.assertIn("swapPools[0] (SOL-USDC): unknown token SOL", errors)
        self.assertIn("stableSwapPools[0] (USDC-USDT): unknown token USDT", errors)

    def test_non_ascii_digit_slope(self) -> None:
        config = sample_config()
        config["swapPools"][0]["slope"] = "²"
        self.assertIn(
            "swapPools[0] (SOL-USDC): slope must be an integer (or integer string)", validate_config(config)
        )

    def test_slope_and_limit_bounds(self) -> None:
        config = sample_config()
        config["swapPools"][0]["slope"] = 10**12
        config["swapPools"][0]["swapOutLimitPercentage"] = 101
        errors = validate_config(config)
        self.assertTrue(any("slope must be in [0, " in e for e in errors))
        self.assertTrue(any("swapOutLimitPercentage must be an integer in [0, 100]" in e for e in errors))

    def test_normal_pool_needs_oracle_priority(self) -> None:
        config = sample_config()
        del config["swapPools"][0]["oraclePriority"]
        errors = validate_config(config)
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("swapPools[0] (SOL-USDC): oraclePriority must be one of"))

    def test_token_checks(self) -> None:
        config = sample_config()
        config["tokens"][1]["decimals"] = 300
        config["tokens"][2]["symbol"] = "SOL"
        config["tokens"][0]["rewards"]["decimals"] = 6
        config["tokens"][0]["mint"] = "nope"
        errors = validate_config(config)
        self.assertIn("token USDC.decimals must be an integer in [0, 255]", errors)
        self.assertIn("tokens[2].symbol duplicates SOL", errors)
        self.assertIn("token SOL.rewards.decimals 6 does not match token decimals 9", errors)
        self.assertIn("token SOL.mint must be a base58 public key", errors)

    def test_parse_slope(self) -> None:
        self.assertEqual(parse_slope("500000000000"), 500_000_000_000)
        self.assertEqual(parse_slope(7), 7)
        self.assertIsNone(parse_slope("0.5"))
        self.assertIsNone(parse_slope(True))
        self.assertIsNone(parse_slope(1.5))
        self.assertIsNone(parse_slope("²"))
        self.assertIsNone(parse_slope("١٢"))

    def test_pair_key_is_unordered(self) -> None:
        self.assertEqual(pair_key("SOL", "USDC"), pair_key("USDC", "SOL"))


class DeployConfigTests(unittest.TestCase):
    def test_parse(self) -> None:
        config = parse_deploy_config(sample_config())
        self.assertEqual(config.program_id, SWAP_PROGRAM_ID)
        self.assertEqual(config.deltafi_mint, Pubkey.from_string(SAMPLE_KEYS["DELTAFI"]))
        self.assertEqual([p.name for p in config.pools], ["SOL-USDC", "USDC-USDT"])
        normal, stable = config.pools
        self.assertEqual(normal.slope, 500_000_000_000)
        self.assertFalse(normal.stable)
        self.assertEqual(normal.oracle_priority, OraclePriority.PYTH_ONLY)
        self.assertTrue(stable.stable)
        self.assertEqual(config.fees.trade_fee_denominator, 1000)
        self.assertTrue(config.fees.is_initialized)
        self.assertEqual(config.token("SOL").rewards.trade_reward_cap, 100_000_000)
        self.assertEqual(config.token("SOL").farm_rewards.apr_denominator, 100)
        self.assertEqual(config.token("USDT").fixed_usd_price, Decimal(1))
        self.assertEqual(config.config_rewards.decimals, 9)
        self.assertEqual(config.config_rewards.trade_reward_cap, 100_000_000)

    def test_config_rewards_override(self) -> None:
        raw = sample_config()
        raw["configRewards"] = {
            "decimals": 6,
            "tradeRewardNumerator": 1,
            "tradeRewardDenominator": 10,
            "tradeRewardCap": 5,
        }
        self.assertEqual(parse_deploy_config(raw).config_rewards.trade_reward_denominator, 10)

    def test_invalid_raises(self) -> None:
        raw = sample_config()
        raw["network"] = "moonnet"
        with self.assertRaises(ValidationError) as ctx:
            parse_deploy_config(raw)
        self.assertTrue(ctx.exception.errors)

    def test_load_json_and_toml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            json_path = Path(tmp) / "config.json"
            json_path.write_text(json.dumps(sample_config()))
            toml_path = Path(tmp) / "config.toml"
            toml_path.write_text(tomli_w.dumps(sample_config()))
            self.assertEqual(load_config_file(json_path), load_config_file(toml_path))
            self.assertEqual(load_deploy_config(toml_path).network, "localhost")

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config_file("/nonexistent/config.json")


if __name__ == "__main__":
    unittest.main()
