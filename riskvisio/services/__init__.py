"""Service layer."""

from riskvisio.services.gate import Admission, AdmissionMode, CredentialGate, KeyIdentity
from riskvisio.services.key_store import KeyStore, RevokeOutcome, RevokeResult

__all__ = [
    "Admission",
    "AdmissionMode",
    "CredentialGate",
    "KeyIdentity",
    "KeyStore",
    "RevokeOutcome",
    "RevokeResult",
]
