from __future__ import annotations

import pytest

from respmux._packer import Packer
from respmux.commands import CommandName
from respmux.config import Config
from respmux.exceptions import DataError


@pytest.fixture
def packer():
    return Packer()


class TestPacker:
    def test_pack_command(self, packer):
        assert packer.pack_command("SET", "k", "v") == (
            b"*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\nv\r\n"
        )

    def test_pack_command_name(self, packer):
        assert packer.pack_command(CommandName.PING) == b"*1\r\n$4\r\nPING\r\n"

    def test_binary_arguments(self, packer):
        assert packer.pack_command(b"SET", b"k", b"a\r\nb") == (
            b"*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$4\r\na\r\nb\r\n"
        )

    def test_empty_argument(self, packer):
        assert packer.pack_command("GET", "") == b"*2\r\n$3\r\nGET\r\n$0\r\n\r\n"

    @pytest.mark.parametrize(
        "value, encoded",
        [
            (1, b"1"),
            (-10, b"-10"),
            (1.5, b"1.5"),
            (0.1, b"0.1"),
            ("λ", "λ".encode()),
        ],
    )
    def test_encode(self, packer, value, encoded):
        assert packer.encode(value) == encoded

    def test_encoding(self):
        assert Packer("latin-1").encode("é") == b"\xe9"

    def test_empty_command(self, packer):
        with pytest.raises(DataError):
            packer.pack_command()

    def test_invalid_argument(self, packer):
        with pytest.raises(DataError):
            packer.pack_command("SET", "k", None)

    def test_invalid_argument_optimized(self, packer):
        Config.optimized = True
        try:
            assert packer.encode(bytearray(b"v")) == b"v"
        finally:
            Config.optimized = None

    def test_pack_commands_concatenates(self, packer):
        first = packer.pack_command("SET", "k", "v")
        second = packer.pack_command("GET", "k")
        assert packer.pack_commands([("SET", "k", "v"), ("GET", "k")]) == first + second

    def test_pack_commands_empty(self, packer):
        assert packer.pack_commands([]) == b""
