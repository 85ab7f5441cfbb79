"""Explicit registration of descriptors for stub aggregation.

Descriptors are keyed by a stable identity: classes and enums by their
source type, functions by module and exposed name. Method blocks are
grouped under the type they extend, since a type may have several.
"""

import logging
from collections import defaultdict

from stubmeta.compiler.descriptors import (
    ClassDescriptor,
    Descriptor,
    EnumDescriptor,
    FunctionDescriptor,
    MethodsBlockDescriptor,
)

logger = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """A descriptor identity was registered twice."""

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Descriptor already registered: {identity}")


class StubCatalog:
    def __init__(self) -> None:
        self.types: dict[str, ClassDescriptor | EnumDescriptor] = {}
        self.functions: dict[tuple[str | None, str], FunctionDescriptor] = {}
        self.methods: dict[str, list[MethodsBlockDescriptor]] = defaultdict(list)

    def register(self, descriptor: Descriptor) -> None:
        match descriptor:
            case ClassDescriptor() | EnumDescriptor():
                if descriptor.source_identity in self.types:
                    raise RegistryError(descriptor.source_identity)
                self.types[descriptor.source_identity] = descriptor
            case FunctionDescriptor():
                key = (descriptor.module, descriptor.name)
                if key in self.functions:
                    raise RegistryError(f"{descriptor.module or ''}::{descriptor.name}")
                self.functions[key] = descriptor
            case MethodsBlockDescriptor():
                self.methods[descriptor.target_identity].append(descriptor)
            case _:
                raise TypeError(f"Not a descriptor: {descriptor!r}")
        logger.debug("Registered %s", type(descriptor).__name__)

    def register_all(self, descriptors) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def modules(self) -> set[str | None]:
        """Every module that has at least one registered type or function."""
        found: set[str | None] = {d.module for d in self.types.values()}
        found.update(module for module, _ in self.functions)
        return found

    def types_in(self, module: str | None) -> list[ClassDescriptor | EnumDescriptor]:
        return [d for d in self.types.values() if d.module == module]

    def functions_in(self, module: str | None) -> list[FunctionDescriptor]:
        return [d for (m, _), d in self.functions.items() if m == module]

    def methods_of(self, identity: str) -> list[MethodsBlockDescriptor]:
        """Method blocks registered for a type, in registration order."""
        return list(self.methods.get(identity, ()))
