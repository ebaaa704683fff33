"""Hash functions used by scripts, box ids and the Fiat-Shamir transform."""

import hashlib

BLAKE2B256_SIZE = 32


def blake2b256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=BLAKE2B256_SIZE).digest()


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()
