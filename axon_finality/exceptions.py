"""
Axon Finality Exceptions.

All library exceptions inherit from FinalityError for easy catching.

Construction-time errors (CommitteeError, EncodingError) signal a caller
contract violation. The remaining errors are raised by internal checks on
untrusted proof data and are mapped to a Verdict by the verification
engine; they never escape verify_block_finality.
"""


class FinalityError(Exception):
    """Base exception for all axon-finality errors."""
    
    def __init__(self, message: str, code: str = "FINALITY_ERROR"):
        super().__init__(message)
        self.code = code
        self.message = message


class EncodingError(FinalityError):
    """Value cannot be canonically encoded."""
    
    def __init__(self, message: str):
        super().__init__(message, "ENCODING_ERROR")


class DecodingError(FinalityError):
    """Bytes are not a canonical RLP item."""
    
    def __init__(self, message: str, offset: int = None):
        super().__init__(message, "DECODING_ERROR")
        self.offset = offset


class CommitteeError(FinalityError):
    """Committee or committee schedule violates its invariants."""
    
    def __init__(self, message: str):
        super().__init__(message, "COMMITTEE_ERROR")


class StructuralError(FinalityError):
    """Proof shape does not match the committee or header."""
    
    def __init__(self, message: str, expected: int = None, actual: int = None):
        super().__init__(message, "STRUCTURAL_ERROR")
        self.expected = expected
        self.actual = actual


class MalformedPointError(FinalityError):
    """Public key or signature is not a valid subgroup point."""
    
    def __init__(self, message: str, index: int = None):
        super().__init__(message, "MALFORMED_POINT")
        self.index = index


class StateProofError(FinalityError):
    """Trie proof is malformed or incomplete."""
    
    def __init__(self, message: str):
        super().__init__(message, "STATE_PROOF_ERROR")


class HeaderChainError(FinalityError):
    """Header does not extend the light client's chain."""
    
    def __init__(self, message: str, number: int = None):
        super().__init__(message, "HEADER_CHAIN_ERROR")
        self.number = number
