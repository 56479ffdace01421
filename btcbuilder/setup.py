# Copyright (C) 2018-2025 The btc-tx-builder developers
#
# This file is part of btc-tx-builder
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of btc-tx-builder, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from btcbuilder.constants import NETWORKS, FORKED_NETWORKS

NETWORK = "testnet"


def setup(network: str = "testnet") -> str:
    """Setup the library with the specified default network.

    Args:
        network: The network to use (mainnet, testnet, signet, regtest,
                 litecoin, litecoin-testnet, dogecoin, bitcoincash, bitcoinsv)
    """
    global NETWORK
    if network not in NETWORKS:
        raise ValueError(f"Unknown network: {network}")
    NETWORK = network
    return NETWORK


def get_network() -> str:
    global NETWORK
    return NETWORK


def resolve_network(network: str | None = None) -> str:
    """Returns the given network or the configured default one"""
    if network is None:
        return get_network()
    if network not in NETWORKS:
        raise ValueError(f"Unknown network: {network}")
    return network


def is_forked_network(network: str | None = None) -> bool:
    """Returns True for networks that require a forked transaction builder"""
    return resolve_network(network) in FORKED_NETWORKS
