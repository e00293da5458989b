"""
ClaimWitness Exception Hierarchy

All exceptions inherit from ClaimWitnessError for easy catching.
"""


class ClaimWitnessError(Exception):
    """Base exception for all ClaimWitness errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(ClaimWitnessError):
    """Raised when a field does not match its wire format"""
    pass


class InvalidConfigurationError(ClaimWitnessError):
    """Raised for a malformed epoch or selection input (zero threshold, empty set)"""
    pass


class InvalidSignatureError(ClaimWitnessError):
    """
    Raised when a signature cannot be recovered to an address.

    Per-signature and non-fatal: the verifier counts the signature out
    of the tally instead of aborting the whole proof.
    """
    pass


class RegistryError(ClaimWitnessError):
    """Raised when registry state cannot be loaded or persisted"""
    pass


class AuthorizationError(ClaimWitnessError):
    """Raised when a non-admin caller tries to append an epoch"""
    pass


class ProofRejectedError(ClaimWitnessError):
    """Raised by ProofVerifier.verify_or_raise() when a gate fails"""

    def __init__(self, reason, message: str, details: dict = None):
        super().__init__(message, details)
        self.reason = reason
