from .generator import generate_employment_agreement

__all__ = ["generate_employment_agreement"]
