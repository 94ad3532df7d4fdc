from variantstore.services.variants.options import VariantOptions, VariantOptionsError
from variantstore.services.variants.transformer import PillowTransformer, TransformError, Transformer
from variantstore.services.variants.variant import InvalidOriginKeyError, Variant, VariantEngine, variant_key

__all__ = [
    "InvalidOriginKeyError",
    "PillowTransformer",
    "TransformError",
    "Transformer",
    "Variant",
    "VariantEngine",
    "VariantOptions",
    "VariantOptionsError",
    "variant_key",
]
