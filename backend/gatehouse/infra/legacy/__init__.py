from .http_verifier import HttpLegacyVerifier

__all__ = ["HttpLegacyVerifier"]
