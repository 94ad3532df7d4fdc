"""Image transformer: decode, crop/resize per variant options, encode to the target format."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO

from PIL import Image, ImageOps, UnidentifiedImageError

from variantstore.services.variants.options import DEFAULT_FORMAT, LOSSY_FORMATS, VariantOptions

_PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}


class TransformError(Exception):
    """Source could not be decoded or the result could not be encoded."""


class Transformer(ABC):
    @abstractmethod
    def transform(self, options: VariantOptions, fmt: str, source: BinaryIO, dest: BinaryIO) -> None:
        """Read an image from source, apply options, write it to dest encoded as fmt."""
        ...


def crop_resize(img: Image.Image, size: int) -> Image.Image:
    """Crop the centre square and resize it to size x size."""
    return crop_resize_to_fill(img, size, size)


def crop_resize_to_fill(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale to cover width x height, then crop the centre to exactly that size."""
    return ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))


class PillowTransformer(Transformer):
    """Default transformer backed by Pillow."""

    def transform(self, options: VariantOptions, fmt: str, source: BinaryIO, dest: BinaryIO) -> None:
        try:
            with Image.open(source) as opened:
                img = ImageOps.exif_transpose(opened)
                img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise TransformError(f"cannot decode image: {e}") from e

        if options.size is not None:
            img = crop_resize(img, options.size)
        if options.resize_to_fill is not None:
            img = crop_resize_to_fill(img, *options.resize_to_fill)

        fmt = fmt if fmt in _PIL_FORMATS else DEFAULT_FORMAT
        save_kwargs = {}
        if fmt == "jpeg" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        if fmt in LOSSY_FORMATS:
            save_kwargs["quality"] = options.resolved_quality()
        try:
            img.save(dest, format=_PIL_FORMATS[fmt], **save_kwargs)
        except (OSError, ValueError) as e:
            raise TransformError(f"cannot encode {fmt}: {e}") from e
