"""
Unit tests for the txref codec in social.graze.btcr.resolve.txref

Tests cover network selection from the magic character, the bit layout of the data part, the dashed formatting,
and rejection of malformed identifiers.
"""

import bech32
import pytest

from social.graze.btcr.resolve.exceptions import InvalidIdentifier
from social.graze.btcr.resolve.txref import (
    MAGIC_BTC_MAINNET,
    MAGIC_BTC_MAINNET_EXTENDED,
    Chain,
    ChainLocator,
    decode,
    encode,
    txref,
)


def data_part(hrp: str, data) -> str:
    """Encode raw 5-bit data and strip the hrp and separator."""
    return bech32.bech32_encode(hrp, data)[len(hrp) + 1 :]


class TestEncode:
    """Test suite for encoding chain locators."""

    def test_encode_mainnet_genesis_layout(self):
        """Test block 0 position 0 encodes as the mainnet magic followed by zero characters."""
        suffix = encode(ChainLocator(chain=Chain.mainnet, block_height=0, block_index=0))
        assert suffix.startswith("rqqq-qqqq-q")
        assert len(suffix.replace("-", "")) == 15

    def test_encode_testnet_magic(self):
        """Test testnet locators start with the testnet magic character."""
        suffix = encode(ChainLocator(chain=Chain.testnet, block_height=1152194, block_index=1))
        assert suffix[0] == "x"

    def test_encode_extended_magic(self):
        """Test locators with an output index use the extended magic and length."""
        mainnet = encode(
            ChainLocator(chain=Chain.mainnet, block_height=10, block_index=2, txo_index=1)
        )
        testnet = encode(
            ChainLocator(chain=Chain.testnet, block_height=10, block_index=2, txo_index=1)
        )
        assert mainnet[0] == "y"
        assert testnet[0] == "8"
        assert len(mainnet.replace("-", "")) == 18

    def test_encode_groups_of_four(self):
        """Test the data part is split in dash separated groups of four."""
        suffix = encode(ChainLocator(chain=Chain.testnet, block_height=1201739, block_index=2))
        groups = suffix.split("-")
        assert [len(group) for group in groups] == [4, 4, 4, 3]

    def test_encode_block_height_out_of_range(self):
        """Test heights beyond 24 bits are rejected."""
        with pytest.raises(ValueError):
            encode(ChainLocator(chain=Chain.mainnet, block_height=0x1000000, block_index=0))

    def test_encode_block_index_out_of_range(self):
        """Test positions beyond 15 bits are rejected."""
        with pytest.raises(ValueError):
            encode(ChainLocator(chain=Chain.mainnet, block_height=0, block_index=0x8000))

    def test_txref_prefix(self):
        """Test the full txref carries the network's human readable part."""
        locator = ChainLocator(chain=Chain.testnet, block_height=1201739, block_index=2)
        assert txref(locator) == f"txtest1:{encode(locator)}"
        mainnet = ChainLocator(chain=Chain.mainnet, block_height=466793, block_index=2205)
        assert txref(mainnet) == f"tx1:{encode(mainnet)}"


class TestDecode:
    """Test suite for decoding method-specific identifiers."""

    @pytest.mark.parametrize(
        "locator",
        [
            ChainLocator(chain=Chain.mainnet, block_height=0, block_index=0),
            ChainLocator(chain=Chain.mainnet, block_height=0xFFFFFF, block_index=0x7FFF),
            ChainLocator(chain=Chain.testnet, block_height=1201739, block_index=2),
            ChainLocator(chain=Chain.mainnet, block_height=466793, block_index=2205, txo_index=3),
            ChainLocator(chain=Chain.testnet, block_height=1152194, block_index=1, txo_index=0x7FFF),
        ],
    )
    def test_decode_recovers_encoded_locator(self, locator):
        """Test decoding an encoded locator yields the same locator for every magic."""
        assert decode(encode(locator)) == locator

    def test_decode_full_txref(self):
        """Test decoding accepts the hrp-prefixed txref form."""
        locator = ChainLocator(chain=Chain.testnet, block_height=1201739, block_index=2)
        assert decode(txref(locator)) == locator

    def test_decode_ignores_case_and_dashes(self):
        """Test decoding is insensitive to case and group separators."""
        locator = ChainLocator(chain=Chain.mainnet, block_height=466793, block_index=2205)
        suffix = encode(locator)
        assert decode(suffix.upper()) == locator
        assert decode(suffix.replace("-", "")) == locator

    def test_decode_bit_layout(self):
        """Test height and position are read from the documented character positions."""
        # height 2 | 12 << 4 | 10 << 9 | 6 << 14 | 2 << 19, position 1
        suffix = data_part("txtest", [6, 4, 12, 10, 6, 2, 1, 0, 0])
        locator = decode(suffix)
        assert locator.chain == Chain.testnet
        assert locator.block_height == 1152194
        assert locator.block_index == 1
        assert locator.txo_index is None

    def test_decode_unknown_magic(self):
        """Test an unknown leading character fails before anything else is checked."""
        with pytest.raises(InvalidIdentifier, match="Invalid magic byte"):
            decode("qqqq-qqqq-qqqq-qqq")

    def test_decode_empty(self):
        """Test an empty identifier is invalid."""
        with pytest.raises(InvalidIdentifier):
            decode("")

    def test_decode_bad_checksum(self):
        """Test a single altered character is detected."""
        suffix = encode(ChainLocator(chain=Chain.testnet, block_height=1201739, block_index=2))
        replacement = "q" if suffix[-1] != "q" else "p"
        with pytest.raises(InvalidIdentifier, match="checksum"):
            decode(suffix[:-1] + replacement)

    def test_decode_invalid_characters(self):
        """Test characters outside the bech32 alphabet are rejected."""
        with pytest.raises(InvalidIdentifier):
            decode("xbio-xbio-xbio-xbi")

    def test_decode_extended_magic_with_standard_length(self):
        """Test the extended magic requires the extended payload length."""
        suffix = data_part("tx", [MAGIC_BTC_MAINNET_EXTENDED] + [0] * 8)
        with pytest.raises(InvalidIdentifier, match="length"):
            decode(suffix)

    def test_decode_unsupported_version(self):
        """Test a payload with the version bit set is rejected."""
        suffix = data_part("tx", [MAGIC_BTC_MAINNET, 1] + [0] * 7)
        with pytest.raises(InvalidIdentifier, match="version"):
            decode(suffix)
