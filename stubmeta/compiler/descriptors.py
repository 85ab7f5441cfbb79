"""Descriptor model produced by the declaration compilers.

Descriptors are frozen values: a compiler builds one, hands it to the
emitter or catalog, and nothing changes it afterwards.
"""

from dataclasses import dataclass
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class PassingKind(StrEnum):
    """How a caller may supply a parameter."""

    POSITIONAL_ONLY = auto()
    POSITIONAL_OR_KEYWORD = auto()
    KEYWORD_ONLY = auto()
    VAR_POSITIONAL = auto()
    VAR_KEYWORD = auto()

    @property
    def group(self) -> str | None:
        """Parameters in the same group may not put a required one after a defaulted one."""
        if self in (PassingKind.POSITIONAL_ONLY, PassingKind.POSITIONAL_OR_KEYWORD):
            return "positional"
        if self == PassingKind.KEYWORD_ONLY:
            return "keyword"
        return None


class CallShape(StrEnum):
    """Overall calling convention of a callable."""

    NOARGS = auto()  # no parameters
    SINGLE = auto()  # exactly one required positional parameter
    POSITIONAL = auto()  # positional-only parameters only
    KEYWORDS = auto()  # named parameters, some keyword-capable
    VARIADIC = auto()  # *args and/or **kwargs present


class MethodKind(StrEnum):
    INSTANCE = auto()
    STATIC = auto()
    CLASS = auto()
    PROPERTY_GETTER = auto()
    PROPERTY_SETTER = auto()
    CONSTRUCTOR = auto()
    CLASS_ATTRIBUTE = auto()


@dataclass(frozen=True)
class ParameterDescriptor(DataClassJsonMixin):
    """A single parameter of an exposed callable.

    ``default_repr`` is documentation only: a Python literal when the
    default could be rendered verbatim, ``...`` otherwise.
    """

    name: str
    type_signature: str
    passing_kind: PassingKind
    has_default: bool = False
    default_repr: str | None = None


@dataclass(frozen=True)
class CallableDescriptor(DataClassJsonMixin):
    name: str
    parameters: tuple[ParameterDescriptor, ...]
    return_type: str
    doc: str = ""
    shape: CallShape = CallShape.NOARGS


@dataclass(frozen=True)
class MemberDescriptor(DataClassJsonMixin):
    """An attribute visible on instances: a field or a merged property."""

    name: str
    type_signature: str
    readable: bool
    writable: bool
    doc: str = ""


@dataclass(frozen=True)
class ClassDescriptor(DataClassJsonMixin):
    """An exposed struct.

    ``constructor`` is ``None`` when the type has no explicit initializer;
    one is never synthesized. ``source_identity`` names the source type and
    is used only to match method blocks and detect collisions.
    """

    exposed_name: str
    module: str | None
    members: tuple[MemberDescriptor, ...]
    constructor: CallableDescriptor | None
    doc: str
    source_identity: str
    base: str | None = None
    flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class VariantDescriptor(DataClassJsonMixin):
    name: str
    value: str
    doc: str = ""


@dataclass(frozen=True)
class EnumDescriptor(DataClassJsonMixin):
    exposed_name: str
    module: str | None
    variants: tuple[VariantDescriptor, ...]
    doc: str
    source_identity: str = ""


@dataclass(frozen=True)
class MethodDescriptor(DataClassJsonMixin):
    kind: MethodKind
    callable: CallableDescriptor

    @property
    def name(self) -> str:
        return self.callable.name


@dataclass(frozen=True)
class MethodsBlockDescriptor(DataClassJsonMixin):
    """Callables of one ``#[pymethods]`` block.

    Getters and setters sharing a name are merged into ``properties``;
    everything else is in ``methods``. Names are unique across the block.
    """

    target_identity: str
    methods: tuple[MethodDescriptor, ...]
    properties: tuple[MemberDescriptor, ...] = ()
    class_attributes: tuple[MemberDescriptor, ...] = ()

    @property
    def constructor(self) -> CallableDescriptor | None:
        for method in self.methods:
            if method.kind == MethodKind.CONSTRUCTOR:
                return method.callable
        return None


@dataclass(frozen=True)
class FunctionDescriptor(DataClassJsonMixin):
    callable: CallableDescriptor
    module: str | None = None
    source_name: str = ""

    @property
    def name(self) -> str:
        return self.callable.name


Descriptor = ClassDescriptor | EnumDescriptor | MethodsBlockDescriptor | FunctionDescriptor
