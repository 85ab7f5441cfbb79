"""Registration catalog for compiled descriptors."""

from .registry import RegistryError as RegistryError
from .registry import StubCatalog as StubCatalog
