"""
Unit tests for the shared script parsing in social.graze.btcr.bitcoin.connection
"""

import pytest

from social.graze.btcr.bitcoin.connection import (
    BitcoinConnection,
    continuation_uri,
    input_public_key,
    is_op_return,
    script_pushes,
)

from conftest import (
    CONTINUATION_URI,
    P2PKH_SCRIPT,
    PUBLIC_KEY,
    SCRIPT_SIG,
    SIGNATURE,
    op_return_script,
)


class TestInterface:
    def test_interface_is_abstract(self):
        """BitcoinConnection should be abstract and not instantiable."""
        with pytest.raises(TypeError):
            BitcoinConnection()


class TestScriptPushes:
    def test_direct_pushes(self):
        pushes = script_pushes(bytes.fromhex(SCRIPT_SIG))
        assert [push.hex() for push in pushes] == [SIGNATURE, PUBLIC_KEY]

    def test_pushdata1(self):
        payload = b"x" * 80
        script = bytes([0x4C, len(payload)]) + payload
        assert script_pushes(script) == [payload]

    def test_pushdata2(self):
        payload = b"y" * 300
        script = bytes([0x4D]) + len(payload).to_bytes(2, "little") + payload
        assert script_pushes(script) == [payload]

    def test_skips_opcodes(self):
        """Test non-push opcodes (OP_DUP, OP_HASH160, ...) are skipped."""
        pushes = script_pushes(bytes.fromhex(P2PKH_SCRIPT))
        assert pushes == [bytes(20)]

    def test_truncated_push(self):
        """Test a push running past the end of the script is dropped."""
        assert script_pushes(bytes([0x05, 0x01, 0x02])) == []

    @pytest.mark.parametrize(
        "script",
        [
            bytes([0x4C]),
            bytes([0x4D, 0x01]),
            bytes([0x4E, 0x01, 0x00, 0x00]),
        ],
    )
    def test_truncated_length_prefix(self, script):
        """Test an OP_PUSHDATA opcode without its full length prefix ends parsing."""
        assert script_pushes(script) == []

    def test_truncated_length_prefix_keeps_earlier_pushes(self):
        script = bytes([0x02, 0xAA, 0xBB, 0x4C])
        assert script_pushes(script) == [bytes([0xAA, 0xBB])]


class TestInputPublicKey:
    def test_script_sig(self):
        assert input_public_key(SCRIPT_SIG) == PUBLIC_KEY

    def test_witness(self):
        assert input_public_key("", [SIGNATURE, PUBLIC_KEY]) == PUBLIC_KEY

    def test_uncompressed_key(self):
        uncompressed = "04" + "cd" * 64
        script_sig = "47" + SIGNATURE + "41" + uncompressed
        assert input_public_key(script_sig) == uncompressed

    def test_not_a_public_key(self):
        """Test a last push that is not 33 or 65 bytes is not taken as a key."""
        script_sig = "47" + SIGNATURE + "14" + "00" * 20
        assert input_public_key(script_sig) is None

    def test_single_push(self):
        assert input_public_key("21" + PUBLIC_KEY) is None

    def test_empty(self):
        assert input_public_key(None) is None
        assert input_public_key("", []) is None

    def test_not_hex(self):
        """Test scripts and witness items that are not hex carry no public key."""
        assert input_public_key("47zz" + PUBLIC_KEY) is None
        assert input_public_key("", [SIGNATURE, "not-hex"]) is None


class TestContinuationUri:
    def test_is_op_return(self):
        assert is_op_return(op_return_script("abc")) is True
        assert is_op_return(P2PKH_SCRIPT) is False
        assert is_op_return(None) is False

    def test_first_op_return(self):
        scripts = [P2PKH_SCRIPT, op_return_script(CONTINUATION_URI), op_return_script("ignored")]
        assert continuation_uri(scripts) == CONTINUATION_URI

    def test_no_op_return(self):
        assert continuation_uri([P2PKH_SCRIPT, None]) is None

    def test_empty_op_return(self):
        assert continuation_uri(["6a"]) is None

    def test_non_utf8_payload_is_skipped(self):
        scripts = ["6a02fffe", op_return_script(CONTINUATION_URI)]
        assert continuation_uri(scripts) == CONTINUATION_URI

    def test_truncated_op_return(self):
        """Test an OP_RETURN ending in a bare OP_PUSHDATA1 carries no URI."""
        assert continuation_uri([P2PKH_SCRIPT, "6a4c"]) is None

    def test_non_hex_op_return_is_skipped(self):
        scripts = ["6aXYZ", op_return_script(CONTINUATION_URI)]
        assert continuation_uri(scripts) == CONTINUATION_URI
