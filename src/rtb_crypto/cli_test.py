import json

import pytest
from click.testing import CliRunner

from rtb_crypto.cli import cli

ENCRYPTION_KEY_B64 = "sIxwz7yw62yrfoLGt12lIHKuYrK_S5kLuApI2BQe7Ac="
INTEGRITY_KEY_B64 = "v3fsVcMBMMHYzRhi7SpM0sdqwzvAxM6KPTu9OtVod5I="
TEST_IV_HEX = "386E3AC0000C0A080123456789ABCDEF"

KEY_OPTIONS = ["--encryption-key", ENCRYPTION_KEY_B64, "--integrity-key", INTEGRITY_KEY_B64]
NO_KEY_ENV = {"RTB_ENCRYPTION_KEY": None, "RTB_INTEGRITY_KEY": None}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner(env=NO_KEY_ENV)


class TestPriceCommands:
    """Test suite for encrypt-price and decrypt-price"""

    def test_encrypt_price(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "encrypt-price", "1.2", "--iv", TEST_IV_HEX])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "OG46wAAMCggBI0VniavN7-mNy0VTKPbB3o5CMQ=="

    def test_encrypt_price_negative(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "encrypt-price", "--iv", TEST_IV_HEX, "--", "-1.2"])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "OG46wAAMCggBI0VniavN7xZyNLqs1wnBKd_m9w=="

    def test_keys_from_env(self):
        runner = CliRunner(env={"RTB_ENCRYPTION_KEY": ENCRYPTION_KEY_B64, "RTB_INTEGRITY_KEY": INTEGRITY_KEY_B64})
        result = runner.invoke(cli, ["decrypt-price", "5nmwvgAM0UABI0VniavN72_sy3T6V9ohlpvOpA=="])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "1.2"

    def test_keys_from_file(self, runner, tmp_path):
        keys_path = tmp_path / "keys.json"
        keys_path.write_text(json.dumps({"encryption_key": ENCRYPTION_KEY_B64, "integrity_key": INTEGRITY_KEY_B64}))
        result = runner.invoke(cli, ["--keys-file", str(keys_path), "decrypt-price", "OG46wAAMCggBI0VniavN7-mNy0UarLs5X0vorg=="])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "1234.5678"

    def test_round_trip_with_generated_iv(self, runner):
        encrypted = runner.invoke(cli, [*KEY_OPTIONS, "encrypt-price", "123.45"])
        assert encrypted.exit_code == 0, encrypted.output
        decrypted = runner.invoke(cli, [*KEY_OPTIONS, "decrypt-price", encrypted.output.strip()])
        assert decrypted.output.strip() == "123.45"

    def test_decrypt_price_tampered(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "decrypt-price", "5nmwvgAM0UABI0VniavN72_sy3T6V9oglpvOpA=="])
        assert result.exit_code == 1
        assert "could not be decrypted" in result.output

    @pytest.mark.parametrize("price", ["abc", "9223372036855"])
    def test_encrypt_price_bad_price(self, runner, price):
        """Unparseable and out-of-range prices are usage errors"""
        result = runner.invoke(cli, [*KEY_OPTIONS, "encrypt-price", price])
        assert result.exit_code == 2

    def test_bad_iv(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "encrypt-price", "1.2", "--iv", "xyz"])
        assert result.exit_code == 2
        assert "not a hex string" in result.output

    def test_missing_keys(self, runner):
        result = runner.invoke(cli, ["decrypt-price", "AA"])
        assert result.exit_code == 2
        assert "Keys are required" in result.output

    def test_invalid_key(self, runner):
        result = runner.invoke(cli, ["--encryption-key", "***", "--integrity-key", INTEGRITY_KEY_B64, "decrypt-price", "AA"])
        assert result.exit_code == 2


class TestFileCommands:
    """Test suite for encrypt and decrypt"""

    def test_round_trip(self, runner, tmp_path):
        plaintext = bytes(range(256)) * 3
        input_path = tmp_path / "plain.bin"
        input_path.write_bytes(plaintext)

        encrypted = runner.invoke(cli, [*KEY_OPTIONS, "encrypt", "-i", str(input_path), "--iv", TEST_IV_HEX])
        assert encrypted.exit_code == 0, encrypted.output
        ciphertext_path = tmp_path / "cipher.txt"
        ciphertext_path.write_text(encrypted.output)

        output_path = tmp_path / "out.bin"
        decrypted = runner.invoke(cli, [*KEY_OPTIONS, "decrypt", "-c", str(ciphertext_path), "-o", str(output_path)])
        assert decrypted.exit_code == 0, decrypted.output
        assert output_path.read_bytes() == plaintext

    def test_decrypt_to_stdout(self, runner, tmp_path):
        ciphertext_path = tmp_path / "cipher.hex"
        ciphertext_path.write_text("386e3ac0000c0a080123456789abcdefe98dcb455328f6c1de8e4231")
        result = runner.invoke(cli, [*KEY_OPTIONS, "decrypt", "-c", str(ciphertext_path), "-f", "hex"])
        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == (1_200_000).to_bytes(8, "big")

    def test_decrypt_failure(self, runner, tmp_path):
        ciphertext_path = tmp_path / "cipher.raw"
        ciphertext_path.write_bytes(bytes(40))
        result = runner.invoke(cli, [*KEY_OPTIONS, "decrypt", "-c", str(ciphertext_path), "-f", "raw"])
        assert result.exit_code == 1
        assert "could not be decrypted" in result.output


class TestInspect:
    """Test suite for inspect"""

    def test_unverified_without_keys(self, runner):
        result = runner.invoke(cli, ["inspect", "OG46wAAMCggBI0VniavN7-mNy0VTKPbB3o5CMQ=="])
        assert result.exit_code == 0, result.output
        assert "unverified" in result.output
        assert "0x0123456789abcdef" in result.output

    def test_verified_with_keys(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "inspect", "OG46wAAMCggBI0VniavN7-mNy0VTKPbB3o5CMQ=="])
        assert result.exit_code == 0, result.output
        assert "verified" in result.output
        assert "unverified" not in result.output

    def test_invalid_with_keys(self, runner):
        result = runner.invoke(cli, [*KEY_OPTIONS, "inspect", "5nmwvgAM0UABI0VniavN72_sy3T6V9oglpvOpA=="])
        assert result.exit_code == 0, result.output
        assert "invalid" in result.output

    @pytest.mark.parametrize("ciphertext", ["***", "AAAA"])
    def test_bad_input(self, runner, ciphertext):
        result = runner.invoke(cli, ["inspect", ciphertext])
        assert result.exit_code == 2


class TestNewIV:
    """Test suite for new-iv"""

    def test_server_id(self, runner):
        result = runner.invoke(cli, ["new-iv", "--server-id", "1"])
        assert result.exit_code == 0, result.output
        iv_hex = result.output.strip()
        assert len(iv_hex) == 32
        assert iv_hex.endswith("0000000000000001")

    def test_random(self, runner):
        result = runner.invoke(cli, ["new-iv"])
        assert len(bytes.fromhex(result.output.strip())) == 16
