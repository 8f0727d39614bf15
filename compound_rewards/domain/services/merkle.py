from __future__ import annotations

from web3 import Web3

from compound_rewards.domain.entities.reward import RewardRecord


EMPTY_ROOT = b"\x00" * 32


def merkle_leaf(account: str, amount: int) -> bytes:
    return bytes(
        Web3.solidity_keccak(["address", "uint256"], [Web3.to_checksum_address(account), amount])
    )


def hash_pair(a: bytes, b: bytes) -> bytes:
    left, right = (a, b) if a <= b else (b, a)
    return bytes(Web3.keccak(left + right))


def _leaves(rewards: list[RewardRecord]) -> list[bytes]:
    return sorted(merkle_leaf(record.account, record.reward) for record in rewards)


def _next_layer(layer: list[bytes]) -> list[bytes]:
    parents: list[bytes] = []
    for index in range(0, len(layer), 2):
        if index + 1 < len(layer):
            parents.append(hash_pair(layer[index], layer[index + 1]))
        else:
            parents.append(layer[index])
    return parents


def merkle_root(rewards: list[RewardRecord]) -> bytes:
    layer = _leaves(rewards)
    if not layer:
        return EMPTY_ROOT
    while len(layer) > 1:
        layer = _next_layer(layer)
    return layer[0]


def merkle_proofs(rewards: list[RewardRecord]) -> dict[str, list[bytes]]:
    """Sibling path of every rewarded account, built in one pass over the tree."""
    leaves = {record.account: merkle_leaf(record.account, record.reward) for record in rewards}
    layer = sorted(leaves.values())
    leaf_index = {leaf: index for index, leaf in enumerate(layer)}
    indexes = {account: leaf_index[leaf] for account, leaf in leaves.items()}
    proofs: dict[str, list[bytes]] = {account: [] for account in leaves}
    while len(layer) > 1:
        for account in proofs:
            sibling = indexes[account] ^ 1
            if sibling < len(layer):
                proofs[account].append(layer[sibling])
            indexes[account] //= 2
        layer = _next_layer(layer)
    return proofs


def merkle_proof(rewards: list[RewardRecord], account: str) -> list[bytes]:
    for owner, proof in merkle_proofs(rewards).items():
        if owner.lower() == account.lower():
            return proof
    raise KeyError(f"Account {account} has no reward.")


def verify_proof(proof: list[bytes], root: bytes, leaf: bytes) -> bool:
    """Replays a claim the way the distributor contract checks it."""
    computed = leaf
    for node in proof:
        computed = hash_pair(computed, node)
    return computed == root
