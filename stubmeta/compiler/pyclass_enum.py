"""Compile ``#[pyclass]`` enums into :class:`EnumDescriptor` values."""

from .attr import VARIANT_OPTIONS, ExposureOptions, attribute_options
from .descriptors import EnumDescriptor, VariantDescriptor
from .errors import EnumError, EnumErrorKind
from .signature import PLACEHOLDER
from .syntax import EnumDecl, TokenTree, VariantShape
from .util import apply_rename_rule, extract_documents, render_default


def _literal_int(trees: tuple[TokenTree, ...]) -> int | None:
    text = render_default(trees)
    if text is None:
        return None
    digits = text.replace("_", "")
    sign = -1 if digits.startswith("-") else 1
    digits = digits.removeprefix("-")
    # Rust reads a leading zero as decimal
    base = {"0x": 16, "0o": 8, "0b": 2}.get(digits[:2].lower(), 10)
    if base != 10:
        digits = digits[2:]
    try:
        return sign * int(digits, base)
    except ValueError:
        return None


def compile_pyclass_enum(item: EnumDecl, options: ExposureOptions) -> EnumDescriptor:
    """Describe a unit-only enum.

    Variants keep declaration order. Values follow the source discriminants;
    an implicit discriminant is the previous value plus one, starting at 0.
    """
    if not item.variants:
        raise EnumError(EnumErrorKind.EMPTY_ENUM, item.name, line=item.line, column=item.column)

    variants: list[VariantDescriptor] = []
    names: set[str] = set()
    next_value: int | None = 0
    for variant in item.variants:
        if variant.shape != VariantShape.UNIT:
            raise EnumError(
                EnumErrorKind.PAYLOAD_VARIANT, variant.name, line=variant.line, column=variant.column
            )

        variant_options = attribute_options(variant.attrs, "pyo3", VARIANT_OPTIONS)
        name = variant_options.name or apply_rename_rule(variant.name, options.rename_all)
        if name in names:
            raise EnumError(
                EnumErrorKind.DUPLICATE_VARIANT, name, line=variant.line, column=variant.column
            )
        names.add(name)

        if variant.discriminant is not None:
            explicit = _literal_int(variant.discriminant)
            if explicit is None:
                value = PLACEHOLDER
                next_value = None
            else:
                value = str(explicit)
                next_value = explicit + 1
        elif next_value is None:
            value = PLACEHOLDER
        else:
            value = str(next_value)
            next_value += 1

        variants.append(
            VariantDescriptor(name=name, value=value, doc=extract_documents(variant.attrs))
        )

    return EnumDescriptor(
        exposed_name=options.name or item.name,
        module=options.module,
        variants=tuple(variants),
        doc=extract_documents(item.attrs),
        source_identity=item.name,
    )
