import unittest

from solders.pubkey import Pubkey

from fakes import FakeCluster, mint_data
from swapforge.accounts import (
    decode_mint_decimals,
    find_authority,
    load_farm_info,
    load_mint_decimals,
    load_swap_info,
    parse_account,
    parse_config_info,
    parse_swap_info,
    referrer_data_address,
)
from swapforge.cluster import AccountInfo
from swapforge.constants import SWAP_PROGRAM_ID
from swapforge.errors import AccountNotFoundError, CodecRangeError
from swapforge.layouts import ConfigInfo, FarmInfo, SwapInfo

OWNER = Pubkey.from_string("FsJ3A3u2vn5cTVofAjvy6y5kwABJAqYWpe4975bi2epH")
ADDRESS = Pubkey.from_string("8tfDNiaEyrV6Q1U4DEXrEigs9DoDtkugzFbybENEbCDz")


def _account(record, owner: Pubkey = SWAP_PROGRAM_ID) -> AccountInfo:
    return AccountInfo(data=record.encode(), owner=owner, lamports=1)


class ParseAccountTests(unittest.TestCase):
    def test_dispatches_on_length(self) -> None:
        parsed = parse_account(ADDRESS, _account(SwapInfo(is_initialized=True, nonce=7)))
        self.assertIsInstance(parsed.data, SwapInfo)
        self.assertEqual(parsed.data.nonce, 7)
        self.assertEqual(parsed.pubkey, ADDRESS)

        parsed = parse_account(ADDRESS, _account(ConfigInfo(version=1)))
        self.assertIsInstance(parsed.data, ConfigInfo)

    def test_missing_account(self) -> None:
        self.assertIsNone(parse_account(ADDRESS, None))

    def test_uninitialized_is_absent(self) -> None:
        self.assertIsNone(parse_account(ADDRESS, _account(SwapInfo())))
        self.assertIsNone(parse_config_info(ADDRESS, _account(ConfigInfo())))

    def test_unknown_length_is_absent(self) -> None:
        self.assertIsNone(parse_account(ADDRESS, AccountInfo(data=bytes(100), owner=SWAP_PROGRAM_ID)))

    def test_typed_parser_only_accepts_its_layout(self) -> None:
        config = _account(ConfigInfo(version=1))
        self.assertIsNone(parse_swap_info(ADDRESS, config))
        self.assertIsNotNone(parse_config_info(ADDRESS, config))


class LoadAccountTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cluster = FakeCluster(SWAP_PROGRAM_ID)

    def test_missing_account_raises(self) -> None:
        with self.assertRaisesRegex(AccountNotFoundError, "Failed to load swap account"):
            load_swap_info(self.cluster, ADDRESS)

    def test_wrong_owner_raises(self) -> None:
        self.cluster.accounts[ADDRESS] = _account(SwapInfo(is_initialized=True), owner=OWNER)
        with self.assertRaisesRegex(AccountNotFoundError, "owned by"):
            load_swap_info(self.cluster, ADDRESS, SWAP_PROGRAM_ID)
        # no owner check without a program id
        self.assertTrue(load_swap_info(self.cluster, ADDRESS).data.is_initialized)

    def test_uninitialized_raises(self) -> None:
        self.cluster.accounts[ADDRESS] = _account(FarmInfo())
        with self.assertRaisesRegex(AccountNotFoundError, "Failed to load farm account"):
            load_farm_info(self.cluster, ADDRESS, SWAP_PROGRAM_ID)

    def test_loads_farm(self) -> None:
        self.cluster.accounts[ADDRESS] = _account(FarmInfo(is_initialized=True, fee_denominator=1000))
        parsed = load_farm_info(self.cluster, ADDRESS, SWAP_PROGRAM_ID)
        self.assertEqual(parsed.data.fee_denominator, 1000)


class AddressTests(unittest.TestCase):
    def test_find_authority_matches_program_address(self) -> None:
        authority, bump = find_authority(ADDRESS, SWAP_PROGRAM_ID)
        expected = Pubkey.find_program_address([bytes(ADDRESS)], SWAP_PROGRAM_ID)
        self.assertEqual((authority, bump), expected)
        self.assertTrue(0 <= bump <= 255)

    def test_referrer_data_address(self) -> None:
        self.assertEqual(
            referrer_data_address(OWNER, SWAP_PROGRAM_ID),
            Pubkey.create_with_seed(OWNER, "referrer", SWAP_PROGRAM_ID),
        )


class MintTests(unittest.TestCase):
    def test_decode_mint_decimals(self) -> None:
        self.assertEqual(decode_mint_decimals(mint_data(6)), 6)
        with self.assertRaises(CodecRangeError):
            decode_mint_decimals(bytes(81))

    def test_load_mint_decimals(self) -> None:
        cluster = FakeCluster(SWAP_PROGRAM_ID)
        cluster.add_mint(ADDRESS, 9)
        self.assertEqual(load_mint_decimals(cluster, ADDRESS), 9)
        with self.assertRaises(AccountNotFoundError):
            load_mint_decimals(cluster, OWNER)


if __name__ == "__main__":
    unittest.main()
