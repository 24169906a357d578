"""Network boundary: signer, relay, verifier and read accessor."""

from tablesync.network.base import ReadAccessor, SignerProvider, SubmissionTransport, Verifier
from tablesync.network.signer import StaticSignerProvider
from tablesync.network.validator import ValidatorClient

__all__ = [
    "ReadAccessor",
    "SignerProvider",
    "StaticSignerProvider",
    "SubmissionTransport",
    "ValidatorClient",
    "Verifier",
]
