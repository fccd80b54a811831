# Overview: Python client for the Komersh API with an explicit resource cache.

from .api import ApiClientError, KomershClient
from .store import MUTATION_INVALIDATIONS, ResourceStore

__all__ = ["ApiClientError", "KomershClient", "MUTATION_INVALIDATIONS", "ResourceStore"]
