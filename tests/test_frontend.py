import tempfile
import unittest
from pathlib import Path

from fakes import SAMPLE_KEYS, keypair_factory, sample_cluster, sample_config
from swapforge.constants import SWAP_PROGRAM_ID
from swapforge.deploy import DeployContext, run_deployment
from swapforge.errors import CheckpointMismatchError
from swapforge.frontend import generate_frontend_config
from swapforge.manifest import parse_deploy_config
from swapforge.state import DeploymentStore
from swapforge.util import write_json


class FrontendConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = DeploymentStore(Path(self._tmp.name) / "localhost-test")
        self.config = parse_deploy_config(sample_config())

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _deploy(self) -> None:
        make = keypair_factory(1)
        run_deployment(
            DeployContext(
                cluster=sample_cluster(SWAP_PROGRAM_ID),
                config=self.config,
                store=self.store,
                admin=make(),
                payer=make(),
                new_keypair=make,
            )
        )

    def test_none_before_deploy(self) -> None:
        self.assertIsNone(generate_frontend_config(self.config, self.store))

    def test_projects_deployment(self) -> None:
        self._deploy()
        shared = self.store.load_shared()
        out = generate_frontend_config(self.config, self.store)
        self.assertEqual(out["network"], "localhost")
        self.assertEqual(out["swapProgramId"], str(SWAP_PROGRAM_ID))
        self.assertEqual(out["marketConfigAddress"], shared["config"])
        self.assertEqual(out["marketAuthority"], shared["marketAuthority"])
        self.assertEqual(out["bumpSeed"], shared["bumpSeed"])
        self.assertEqual(out["deltafiTokenMint"], SAMPLE_KEYS["DELTAFI"])
        self.assertNotIn("serumProgramId", out)

        normal, stable = out["poolInfo"]
        result = self.store.read_result("SOL-USDC")
        self.assertEqual(normal["name"], "SOL-USDC")
        self.assertEqual((normal["base"], normal["quote"]), ("SOL", "USDC"))
        self.assertEqual(normal["swap"], result["pool_SOL-USDC_swap"])
        self.assertEqual(normal["farm"], result["farm_pool_SOL-USDC"])
        self.assertEqual(normal["decimals"], 9)
        self.assertEqual(normal["oraclePriority"], "PYTH_ONLY")
        self.assertFalse(normal["stable"])
        self.assertTrue(stable["stable"])
        self.assertNotIn("oraclePriority", stable)

        tokens = {t["symbol"]: t for t in out["tokenInfo"]}
        self.assertEqual(sorted(tokens), ["SOL", "USDC", "USDT"])
        self.assertEqual(tokens["SOL"]["pyth"]["price"], SAMPLE_KEYS["SOL/USD price"])
        self.assertEqual(tokens["SOL"]["name"], "Solana")
        self.assertIsNone(tokens["USDT"]["pyth"])
        self.assertEqual(tokens["USDT"]["decimals"], 6)

    def test_mismatched_result_raises(self) -> None:
        self._deploy()
        result = self.store.read_result("USDC-USDT")
        result["config"] = SAMPLE_KEYS["SOL"]
        write_json(self.store.result_dir("USDC-USDT") / "result_pubkeys.json", result)
        with self.assertRaises(CheckpointMismatchError):
            generate_frontend_config(self.config, self.store)


if __name__ == "__main__":
    unittest.main()
