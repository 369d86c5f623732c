"""
Protocol constants for Axon block finality.

These values are part of the wire protocol. Changing any of them makes the
verifier disagree with the network, so they are module constants rather
than configuration.
"""

# BLS12-381 min-pk: public keys in G1, signatures in G2
PUBLIC_KEY_LENGTH = 48
SIGNATURE_LENGTH = 96

# Domain separation tag used by Axon validators when hashing votes to G2
BLS_DST = b"BLS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RONUL"

# Vote types (Overlord consensus); finality is carried by precommits
VOTE_TYPE_PREVOTE = 1
VOTE_TYPE_PRECOMMIT = 2

# Signed message layout: keccak256(rlp([height, round, vote_type, block_hash]))
# where block_hash = keccak256(rlp(proposal)).
MESSAGE_FORMAT_VERSION = 1

# Strict supermajority: participating * DENOMINATOR > total * NUMERATOR
QUORUM_NUMERATOR = 2
QUORUM_DENOMINATOR = 3

# Field sizes
HASH_LENGTH = 32
ADDRESS_LENGTH = 20
BLOOM_LENGTH = 256

# Integer widths
U8_MAX = 2**8 - 1
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
U256_MAX = 2**256 - 1
