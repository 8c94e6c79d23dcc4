import logging
import os
from typing import Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from utils.errors import ProcessingError, ValidationError
from utils.files import derive_filename, unique_output_path


logger = logging.getLogger(__name__)

# format -> (PIL format, extension, mimetype)
FORMATS = {
    "jpeg": ("JPEG", "jpg", "image/jpeg"),
    "jpg": ("JPEG", "jpg", "image/jpeg"),
    # Multi-picture JPEG, as written by many cameras
    "mpo": ("JPEG", "jpg", "image/jpeg"),
    "png": ("PNG", "png", "image/png"),
    "webp": ("WEBP", "webp", "image/webp"),
    "gif": ("GIF", "gif", "image/gif"),
    "bmp": ("BMP", "bmp", "image/bmp"),
}

# Formats that cannot hold an alpha channel
NO_ALPHA = ("JPEG", "BMP")

# Modes each remaining format can store as-is
STORABLE_MODES = {
    "PNG": ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"),
    "GIF": ("1", "L", "P", "RGB", "RGBA"),
    "WEBP": ("RGB", "RGBA"),
}

ASPECT_RATIOS = {
    "1:1": 1.0,
    "4:3": 4 / 3,
    "16:9": 16 / 9,
    "3:2": 3 / 2,
    "5:4": 5 / 4,
    "9:16": 9 / 16,
    "2:3": 2 / 3,
}

UPSCALE_FILTERS = {
    "nearest": Image.NEAREST,
    "bilinear": Image.BILINEAR,
    "bicubic": Image.BICUBIC,
    "lanczos": Image.LANCZOS,
}

# Algorithms that grow the image in steps of at most 2x
MULTI_STEP_ALGORITHMS = ("bicubic", "lanczos")

MAX_UPSCALE_DIMENSION = 8192
MIN_CROP_SIZE = 10


# ------------------------------------------------------------------
# Geometry helpers
# ------------------------------------------------------------------

def compute_resize_dimensions(
    orig_width: int,
    orig_height: int,
    width: Optional[float] = None,
    height: Optional[float] = None,
    maintain_aspect_ratio: bool = True,
) -> Tuple[int, int]:
    """
    Target size for a resize.

    Keeping the aspect ratio, a single given side derives the other one,
    and two given sides act as a bounding box the image is fitted into.
    """
    if orig_width <= 0 or orig_height <= 0:
        raise ValidationError("Image has no pixels.")

    width = width or None
    height = height or None

    if maintain_aspect_ratio:
        aspect = orig_width / orig_height
        if width and not height:
            height = width / aspect
        elif height and not width:
            width = height * aspect
        elif width and height:
            if aspect > width / height:
                height = width / aspect
            else:
                width = height * aspect

    w = int(round(width)) if width else orig_width
    h = int(round(height)) if height else orig_height
    return max(1, w), max(1, h)


def bound_crop_area(
    x: float, y: float, width: float, height: float, image_width: int, image_height: int
) -> Dict[str, int]:
    """
    Clamp a crop rectangle to the image, never smaller than MIN_CROP_SIZE.
    """
    width = max(MIN_CROP_SIZE, min(width, image_width))
    height = max(MIN_CROP_SIZE, min(height, image_height))
    x = max(0, min(x, image_width - width))
    y = max(0, min(y, image_height - height))

    return {
        "x": int(round(x)),
        "y": int(round(y)),
        "width": int(round(width)),
        "height": int(round(height)),
    }


def apply_aspect_ratio(area: Dict[str, float], ratio: str, image_height: int) -> Dict[str, float]:
    """
    Reshape a crop area to a preset ratio, shrinking the width when the
    new height would run past the bottom of the image.
    """
    if ratio not in ASPECT_RATIOS:
        raise ValidationError(f"Unknown aspect ratio: {ratio}")

    target = ASPECT_RATIOS[ratio]
    new_height = area["width"] / target
    available = image_height - area["y"]

    if new_height <= available:
        return {**area, "height": new_height}
    return {**area, "width": available * target, "height": available}


def upscale_steps(scale: float) -> List[float]:
    """
    Factors for multi-step upscaling: 3 -> [2, 1.5], 4 -> [2, 2].
    """
    steps = []
    current = 1.0
    while current < scale - 1e-9:
        step = min(2.0, scale / current)
        steps.append(step)
        current *= step
    return steps


def to_rgb_mode(img: Image.Image) -> Image.Image:
    """RGBA when the image carries transparency, RGB otherwise."""
    has_alpha = "A" in img.getbands() or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


# ------------------------------------------------------------------
# Processor
# ------------------------------------------------------------------

class ImageProcessor:
    """
    Raster transforms for the image tools.

    Every public method returns (output_path, download_name, mimetype).
    """

    def __init__(self, output_folder: str):
        self.output_folder = output_folder

    def _open(self, path: str) -> Image.Image:
        try:
            img = Image.open(path)
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ProcessingError(f"Failed to load image: {e}") from e
        return img

    def _resolve_format(self, fmt: Optional[str], img: Image.Image) -> Tuple[str, str, str]:
        key = (fmt or img.format or "png").lower()
        if key not in FORMATS:
            raise ValidationError(f"Unsupported image format: {fmt or img.format}")
        return FORMATS[key]

    def _prepare_for(self, img: Image.Image, pil_format: str) -> Image.Image:
        if pil_format in NO_ALPHA:
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                rgba = img.convert("RGBA")
                background = Image.new("RGB", rgba.size, (255, 255, 255))
                background.paste(rgba, mask=rgba.split()[-1])
                return background
            if img.mode != "RGB":
                return img.convert("RGB")
        elif img.mode not in STORABLE_MODES.get(pil_format, (img.mode,)):
            return to_rgb_mode(img)
        return img

    def _save(
        self,
        img: Image.Image,
        pil_format: str,
        ext: str,
        download_name: str,
        quality: int = 90,
    ) -> str:
        out_path = unique_output_path(self.output_folder, download_name, ext)
        img = self._prepare_for(img, pil_format)

        params = {}
        if pil_format in ("JPEG", "WEBP"):
            params["quality"] = max(1, min(100, int(quality)))
        if pil_format in ("JPEG", "PNG"):
            params["optimize"] = True

        img.save(out_path, pil_format, **params)
        return out_path

    # --------------------------------------------------------------
    # Tools
    # --------------------------------------------------------------

    def resize(
        self,
        path: str,
        width: Optional[float] = None,
        height: Optional[float] = None,
        percentage: Optional[float] = None,
        maintain_aspect_ratio: bool = True,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        img = self._open(path)
        pil_format, ext, mimetype = self._resolve_format(None, img)

        if percentage:
            if percentage <= 0:
                raise ValidationError("Percentage must be positive.")
            target = (
                max(1, int(round(img.width * percentage / 100))),
                max(1, int(round(img.height * percentage / 100))),
            )
        else:
            if not width and not height:
                raise ValidationError("Please specify dimensions.")
            target = compute_resize_dimensions(
                img.width, img.height, width, height, maintain_aspect_ratio
            )

        resized = img.resize(target, Image.LANCZOS)
        name = derive_filename(original_name or os.path.basename(path), f"resized_{target[0]}x{target[1]}", ext)
        out = self._save(resized, pil_format, ext, name)

        logger.debug("resized %s %sx%s -> %sx%s", name, img.width, img.height, *target)
        return out, name, mimetype

    def crop(
        self,
        path: str,
        x: float,
        y: float,
        width: float,
        height: float,
        aspect_ratio: Optional[str] = None,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        img = self._open(path)

        area = {"x": x, "y": y, "width": width, "height": height}
        if aspect_ratio and aspect_ratio != "custom":
            area = apply_aspect_ratio(area, aspect_ratio, img.height)

        box = bound_crop_area(area["x"], area["y"], area["width"], area["height"], img.width, img.height)
        cropped = img.crop((box["x"], box["y"], box["x"] + box["width"], box["y"] + box["height"]))

        name = derive_filename(original_name or os.path.basename(path), "cropped", "png")
        out = self._save(cropped, "PNG", "png", name)
        return out, name, "image/png"

    def upscale(
        self,
        path: str,
        scale: int = 2,
        algorithm: str = "bicubic",
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        if algorithm not in UPSCALE_FILTERS:
            raise ValidationError(f"Unknown upscaling algorithm: {algorithm}")
        if scale not in (2, 3, 4):
            raise ValidationError("Scale factor must be 2, 3 or 4.")

        img = self._open(path)
        target = (img.width * scale, img.height * scale)
        if max(target) > MAX_UPSCALE_DIMENSION:
            raise ValidationError(
                f"Upscaling would result in {target[0]}x{target[1]} pixels. "
                "Please use a smaller scale factor or smaller image."
            )

        if img.mode not in ("RGB", "RGBA"):
            img = to_rgb_mode(img)

        resample = UPSCALE_FILTERS[algorithm]
        if algorithm in MULTI_STEP_ALGORITHMS:
            current = img
            steps = upscale_steps(scale)
            done = 1.0
            for i, step in enumerate(steps):
                done *= step
                if i == len(steps) - 1:
                    size = target
                else:
                    size = (int(round(img.width * done)), int(round(img.height * done)))
                current = current.resize(size, resample)
            result = current
        else:
            result = img.resize(target, resample)

        name = derive_filename(original_name or os.path.basename(path), f"upscaled_{scale}x", "png")
        out = self._save(result, "PNG", "png", name)
        return out, name, "image/png"

    def convert(
        self,
        path: str,
        fmt: str = "jpeg",
        quality: int = 90,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        img = self._open(path)
        pil_format, ext, mimetype = self._resolve_format(fmt, img)

        name = derive_filename(original_name or os.path.basename(path), "", ext)
        out = self._save(img, pil_format, ext, name, quality=quality)
        return out, name, mimetype

    def compress(
        self,
        path: str,
        quality: int = 80,
        max_width: int = 1920,
        max_height: int = 1080,
        original_name: Optional[str] = None,
    ) -> Tuple[str, str, str]:
        img = self._open(path)
        pil_format, ext, mimetype = self._resolve_format(None, img)

        if img.width > max_width or img.height > max_height:
            ratio = min(max_width / img.width, max_height / img.height)
            size = (max(1, int(img.width * ratio)), max(1, int(img.height * ratio)))
            img = img.resize(size, Image.LANCZOS)

        name = derive_filename(original_name or os.path.basename(path), "compressed", ext)
        out = self._save(img, pil_format, ext, name, quality=quality)
        return out, name, mimetype

    def thumbnail(
        self, path: str, size: int = 150, original_name: Optional[str] = None
    ) -> Tuple[str, str, str]:
        img = self._open(path)

        side = min(img.width, img.height)
        left = (img.width - side) // 2
        top = (img.height - side) // 2
        square = img.crop((left, top, left + side, top + side)).resize((size, size), Image.LANCZOS)

        name = derive_filename(original_name or os.path.basename(path), "thumbnail", "png")
        out = self._save(square, "PNG", "png", name)
        return out, name, "image/png"

    def metadata(self, path: str, original_name: Optional[str] = None) -> Dict[str, object]:
        img = self._open(path)
        return {
            "name": original_name or os.path.basename(path),
            "width": img.width,
            "height": img.height,
            "aspect_ratio": img.width / img.height if img.height else 0,
            "format": img.format,
            "mode": img.mode,
            "size": os.path.getsize(path),
        }
