"""
Deterministic entity keys.

Every entity is addressed by a key derived from its defining attributes,
so the same inputs always name the same record and a second create for
the same attributes collides on the primary key. All derivation goes
through derive_key(); call sites never hash on their own.

    derive_key(kind, *parts) -> 64-char hex SHA-256

Parts are length-prefixed before hashing, so ("ab", "c") and ("a", "bc")
never produce the same key.
"""

import hashlib

PROTOCOL_STATE = "protocol-state"
PROTOCOL_REGISTRY = "protocol-registry"
PROTOCOL = "protocol"
POOL = "pool"
PROVIDER = "provider"
POLICY = "policy"
CLAIM = "claim"
ALERT = "alert"


def derive_key(kind: str, *parts) -> str:
    digest = hashlib.sha256()
    for item in (kind, *parts):
        data = str(item).encode("utf-8")
        digest.update(len(data).to_bytes(4, "big"))
        digest.update(data)
    return digest.hexdigest()


def protocol_state_key() -> str:
    return derive_key(PROTOCOL_STATE)


def protocol_registry_key() -> str:
    return derive_key(PROTOCOL_REGISTRY)


def protocol_key(authority: str) -> str:
    return derive_key(PROTOCOL, authority)


def pool_key(pool_type) -> str:
    """Key of the pool for a tier; also the owner of the pool's token account."""
    return derive_key(POOL, str(pool_type))


def provider_key(owner: str, pool_id: str) -> str:
    return derive_key(PROVIDER, owner, pool_id)


def policy_key(insured: str, protocol_id: str, generation: int) -> str:
    return derive_key(POLICY, insured, protocol_id, generation)


def claim_key(policy_id: str) -> str:
    return derive_key(CLAIM, policy_id)


def alert_key(protocol_id: str, created_at: int, sequence: int) -> str:
    return derive_key(ALERT, protocol_id, created_at, sequence)
