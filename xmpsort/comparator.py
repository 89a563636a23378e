"""
Module: comparator
Purpose: Decide whether two colliding files hold the same content.
"""

import os
from functools import reduce

from PIL import Image, ImageChops

from .exceptions import ComparisonError, HashingError, OversizedImageError
from .hashing import same_content
from .models.fileinfo import is_sidecar_path
from .utils import effective_pixel_limit, enforce_pixel_limit, ensure_heif_registered

# Differing pixel count above which two decoded images are distinct; any single pixel is enough.
DISTORTION_THRESHOLD = 0.000001
# Containers Pillow cannot decode; compared byte for byte instead.
HASH_COMPARED_EXTENSIONS = {".mp4", ".mov", ".avi", ".m4v", ".3gp", ".mts", ".cr3"}


def image_distortion(path_a: str, path_b: str) -> int:
    """
    Number of pixels that differ in at least one channel between two decoded
    images. Alpha counts as a channel.

    Images of different dimensions differ in every pixel of the larger one.

    Raises:
        OversizedImageError: If an image exceeds the decoder pixel cap.
        ComparisonError: If either image cannot be decoded.
    """
    ensure_heif_registered()
    enforce_pixel_limit()
    limit = effective_pixel_limit()
    try:
        with Image.open(path_a) as image_a, Image.open(path_b) as image_b:
            for path, image in ((path_a, image_a), (path_b, image_b)):
                width, height = image.size
                if width * height > limit:
                    raise OversizedImageError(
                        f"{path} has {width * height:,} pixels, above the decoder cap of {limit:,}"
                    )
            if image_a.size != image_b.size:
                return max(image_a.width * image_a.height, image_b.width * image_b.height)
            difference = ImageChops.difference(image_a.convert("RGBA"), image_b.convert("RGBA"))
            # per-pixel maximum over the bands, then 255 wherever anything differs
            strongest = reduce(ImageChops.lighter, difference.split())
            mask = strongest.point(lambda value: 255 if value else 0)
            return mask.histogram()[255]
    except OversizedImageError:
        raise
    except Image.DecompressionBombError as exc:
        raise OversizedImageError(f"Decompression bomb detected comparing {path_a} and {path_b}") from exc
    except (OSError, ValueError) as exc:
        raise ComparisonError(f"Failed to compare {path_a} and {path_b}: {exc}") from exc


def are_sidecars_duplicates(path_a: str, path_b: str) -> bool:
    """
    Sidecars are duplicates only when their bytes are identical.
    """
    return same_content(path_a, path_b)


def are_images_duplicates(path_a: str, path_b: str) -> bool:
    return image_distortion(path_a, path_b) <= DISTORTION_THRESHOLD


def are_duplicates(path_a: str, path_b: str, ctx) -> bool:
    """
    Compare two same-named files and count confirmed duplicates.

    Args:
        path_a: File already sitting at the destination.
        path_b: Incoming file that collided with it.
        ctx: SortContext providing the filesystem layer, log and statistics.

    Returns:
        True only when the content is judged identical. Any failure while
        reading or decoding is logged and reported as not duplicate.
    """
    extension_a = os.path.splitext(path_a)[1].lower()
    extension_b = os.path.splitext(path_b)[1].lower()
    if extension_a != extension_b:
        ctx.log.warning(f"Not comparing '{path_a}' and '{path_b}': extensions differ")
        return False

    real_a = ctx.fs.real_path(path_a)
    real_b = ctx.fs.real_path(path_b)
    sidecar = is_sidecar_path(path_a)
    try:
        if sidecar or extension_a in HASH_COMPARED_EXTENSIONS:
            duplicate = are_sidecars_duplicates(real_a, real_b)
        else:
            duplicate = are_images_duplicates(real_a, real_b)
    except (HashingError, ComparisonError, OversizedImageError) as exc:
        ctx.log.error(f"Comparison of '{path_a}' and '{path_b}' failed, keeping both: {exc}")
        return False

    if duplicate:
        if sidecar:
            ctx.statistics.skipped_xmps += 1
        else:
            ctx.statistics.skipped_images += 1
        ctx.log.debug(f"{path_b} is duplicate of {path_a}")
    return duplicate
