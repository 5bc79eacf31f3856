"""Chain id -> network table used for RPC selection and DID derivation."""
from dataclasses import dataclass
from typing import Dict

from .errors import ConfigurationError, UnknownChainError
from .utils import normalize_address

EW_CHAIN_ID = 246
VOLTA_CHAIN_ID = 73799


@dataclass(frozen=True)
class Network:
    chain_id: int
    name: str
    rpc_url: str


_NETWORKS: Dict[int, Network] = {}


def register_network(chain_id: int, name: str, rpc_url: str = "") -> Network:
    if not name or ":" in name:
        raise ConfigurationError(f"invalid network name: {name!r}")
    network = Network(int(chain_id), name, rpc_url)
    _NETWORKS[network.chain_id] = network
    return network


def get_network(chain_id: int) -> Network:
    try:
        return _NETWORKS[chain_id]
    except KeyError:
        raise UnknownChainError(chain_id) from None


def format_did(address: str, chain_id: int) -> str:
    network = get_network(chain_id)
    return f"did:ethr:{network.name}:{normalize_address(address)}"


register_network(EW_CHAIN_ID, "ewc", "https://archive-rpc.energyweb.org")
register_network(VOLTA_CHAIN_ID, "volta", "https://volta-rpc.energyweb.org")
