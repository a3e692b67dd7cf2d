from .agreement import GeneratedAgreement

__all__ = ["GeneratedAgreement"]
