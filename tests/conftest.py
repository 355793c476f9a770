import pytest

# Solidity >=0.6 style metadata: {"ipfs": <34 bytes>, "solc": <3 bytes>}, 51 bytes
IPFS_METADATA_A = "a2646970667358221220" + "11" * 32 + "64736f6c6343" + "000813" + "0033"
IPFS_METADATA_B = "a2646970667358221220" + "22" * 32 + "64736f6c6343" + "000814" + "0033"
# Solidity 0.4/0.5 style metadata: {"bzzr0": <32 bytes>}, 41 bytes
BZZR0_METADATA = "a165627a7a72305820" + "33" * 32 + "0029"


class FakeCodeProvider:
    """In-memory ChainCodeProvider that records every lookup."""

    def __init__(self, codes=None):
        self.codes = {address.lower(): code for address, code in (codes or {}).items()}
        self.calls = []

    def get_code(self, address):
        self.calls.append(address)
        return self.codes.get(address.lower(), "0x")


@pytest.fixture
def code_provider():
    return FakeCodeProvider()
