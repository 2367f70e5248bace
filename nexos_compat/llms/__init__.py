from .classifier import ProviderFamily, classify_model, matching_families


__all__ = ["ProviderFamily", "classify_model", "matching_families"]
