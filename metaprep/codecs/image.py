"""
Pillow-backed image codec: pixel decoding, palette quantization, lossless
PNG re-compression, WebP encoding and format conversion.
"""

import io
import struct
import logging
from typing import Iterator, List, Tuple

from PIL import Image

from ..config.constants import CONVERT_TARGETS
from ..core.exceptions import DecodeError, EncodeError, ValidationError
from ..engines.png import PngEngine, is_critical

# Errors Pillow raises for unreadable or truncated input
PILLOW_ERRORS = (OSError, ValueError, SyntaxError)


class PixelBuffer:
    """An RGBA pixel buffer whose byte length is checked against its dimensions."""

    def __init__(self, width: int, height: int, data: bytes):
        if width <= 0 or height <= 0:
            raise ValidationError("dimensions", f"{width}x{height}", "positive width and height")
        if len(data) != width * height * 4:
            raise ValidationError("pixel data", f"{len(data)} bytes",
                                  f"exactly {width * height * 4} bytes for {width}x{height} RGBA")
        self.width = width
        self.height = height
        self.data = bytes(data)

    def pixels(self) -> Iterator[Tuple[int, int, int, int]]:
        """Iterate (r, g, b, a) tuples in row-major order."""
        return struct.iter_unpack("4B", self.data)

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), self.data)

    def __len__(self) -> int:
        return self.width * self.height

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"


def _open(data: bytes, format_name: str = "image") -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except PILLOW_ERRORS as e:
        raise DecodeError(format_name, f"Pillow could not decode the image: {e}")
    return img


def decode_pixels(data: bytes) -> PixelBuffer:
    """Decode any Pillow-readable image into an RGBA PixelBuffer."""
    img = _open(data)
    rgba = img.convert("RGBA")
    return PixelBuffer(rgba.width, rgba.height, rgba.tobytes())


def encode_png(pixels: PixelBuffer) -> bytes:
    """Encode an RGBA buffer as a truecolour PNG."""
    output = io.BytesIO()
    try:
        pixels.to_image().save(output, format="PNG")
    except PILLOW_ERRORS as e:
        raise EncodeError("PNG", "encode", e)
    return output.getvalue()


def quantize(pixels: PixelBuffer, quality: int, speed: int) -> Tuple[List[Tuple[int, int, int, int]], bytes]:
    """
    Reduce an RGBA buffer to a palette.

    Args:
        pixels: Source pixels
        quality: 0-100, scales the palette size (2-256 colours)
        speed: 1-10, slower settings dither and refine the palette

    Returns:
        (palette, indices): RGBA palette entries and one palette index per pixel
    """
    colors = max(2, min(256, round(256 * quality / 100)))
    dither = Image.Dither.FLOYDSTEINBERG if speed <= 5 else Image.Dither.NONE
    kmeans = max(0, 5 - speed)

    try:
        quantized = pixels.to_image().quantize(
            colors=colors,
            method=Image.Quantize.FASTOCTREE,
            kmeans=kmeans,
            dither=dither,
        )
    except PILLOW_ERRORS as e:
        raise EncodeError("PNG", "quantize", e)

    indices = quantized.tobytes()
    flat = quantized.getpalette(rawmode="RGBA") or []
    used = max(indices) + 1 if indices else 1
    palette = [tuple(flat[i:i + 4]) for i in range(0, min(len(flat), used * 4), 4)]
    logging.debug(f"Quantized {pixels.width}x{pixels.height} image to {len(palette)} colours "
                  f"(target {colors}, kmeans {kmeans}, dither {dither.name})")
    return palette, indices


def encode_indexed_png(palette, indices: bytes, width: int, height: int) -> bytes:
    """Encode palette indices as an 8-bit indexed PNG (PLTE plus tRNS for alpha)."""
    if len(indices) != width * height:
        raise ValidationError("indices", f"{len(indices)} bytes", f"exactly {width * height} bytes")
    if not palette or len(palette) > 256:
        raise ValidationError("palette", len(palette), "1 to 256 entries")

    img = Image.frombytes("P", (width, height), bytes(indices))
    img.putpalette([channel for color in palette for channel in color], rawmode="RGBA")

    output = io.BytesIO()
    try:
        img.save(output, format="PNG", optimize=True)
    except PILLOW_ERRORS as e:
        raise EncodeError("PNG", "encode indexed", e)
    return output.getvalue()


def quantize_png(data: bytes, quality: int, speed: int) -> bytes:
    """Decode -> quantize -> encode as an indexed PNG."""
    pixels = decode_pixels(data)
    palette, indices = quantize(pixels, quality, speed)
    return encode_indexed_png(palette, indices, pixels.width, pixels.height)


def _splice_ancillary(source, encoded) -> list:
    """
    Put the source's ancillary chunks back into a re-encoded chunk list.

    Chunks keep their position relative to PLTE and IDAT; types the encoder
    already wrote are not duplicated.
    """
    present = {r.identifier for r in encoded}
    before_plte, before_idat, after_idat = [], [], []
    seen_plte = seen_idat = False

    for record in source:
        if record.identifier == b"PLTE":
            seen_plte = True
        elif record.identifier == b"IDAT":
            seen_idat = True
        elif not is_critical(record.identifier) and record.identifier not in present:
            if seen_idat:
                after_idat.append(record)
            elif seen_plte:
                before_idat.append(record)
            else:
                before_plte.append(record)

    spliced = []
    idat_started = False
    for record in encoded:
        if record.identifier == b"IDAT" and not idat_started:
            spliced.extend(before_idat)
            idat_started = True
        elif record.identifier == b"IEND":
            spliced.extend(after_idat)
        spliced.append(record)
        if record.identifier == b"IHDR":
            spliced.extend(before_plte)
    return spliced


def recompress_png(data: bytes) -> bytes:
    """
    Losslessly re-encode a PNG with maximum DEFLATE effort.

    Returns the input unchanged when the re-encode is not smaller, or when
    the image is 16-bit or animated (Pillow would not round-trip it exactly).
    """
    engine = PngEngine()
    source = engine.walk(data)

    ihdr = source[0] if source and source[0].identifier == b"IHDR" else None
    if ihdr is None or ihdr.byte_length < 13:
        raise DecodeError("PNG", "first chunk is not a valid IHDR", 8)
    if ihdr.payload[8] == 16:
        logging.debug("PNG: 16-bit image, skipping lossless re-compression")
        return data
    if any(r.identifier == b"acTL" for r in source):
        logging.debug("PNG: animated image, skipping lossless re-compression")
        return data

    img = _open(data, "PNG")
    save_options = {'format': "PNG", 'optimize': True}
    if "transparency" in img.info:
        save_options['transparency'] = img.info["transparency"]

    output = io.BytesIO()
    try:
        img.save(output, **save_options)
    except PILLOW_ERRORS as e:
        raise EncodeError("PNG", "recompress", e)

    encoded = engine.walk(output.getvalue())
    candidate = engine.reconstruct(data, _splice_ancillary(source, encoded))

    if len(candidate) >= len(data):
        logging.debug(f"PNG: re-compression not smaller ({len(candidate)} >= {len(data)} bytes), keeping input")
        return data
    logging.debug(f"PNG: re-compression saved {len(data) - len(candidate)} bytes")
    return candidate


def encode_webp(data: bytes, quality: int = 80, lossless: bool = False,
                keep_metadata: bool = False, method: int = 4) -> bytes:
    """
    Re-encode an image as WebP.

    EXIF and ICC profile are carried over only with ``keep_metadata``.
    Animated input is re-encoded frame by frame.
    """
    img = _open(data, "WebP")
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")

    options = {
        'format': "WEBP",
        'quality': quality,
        'lossless': lossless,
        'method': method,
    }
    if getattr(img, "n_frames", 1) > 1:
        options['save_all'] = True
    if keep_metadata:
        if img.info.get("exif"):
            options['exif'] = img.info["exif"]
        if img.info.get("icc_profile"):
            options['icc_profile'] = img.info["icc_profile"]

    output = io.BytesIO()
    try:
        img.save(output, **options)
    except PILLOW_ERRORS as e:
        raise EncodeError("WebP", "encode", e)
    return output.getvalue()


def convert_image(data: bytes, target: str, quality: int = 80, lossless: bool = False) -> bytes:
    """
    Convert an image to PNG, JPEG or WebP.

    JPEG has no alpha channel: transparent pixels are flattened onto white.
    """
    key = str(target).lower()
    if key not in CONVERT_TARGETS:
        raise ValidationError("target", target, f"one of: {', '.join(CONVERT_TARGETS)}")
    pil_format, _ = CONVERT_TARGETS[key]

    img = _open(data)
    logging.debug(f"Converting {img.width}x{img.height} {img.format} image to {pil_format}")

    options = {'format': pil_format}
    if pil_format == "JPEG":
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, (255, 255, 255))
            flattened.paste(rgba, mask=rgba.split()[3])
            img = flattened
        else:
            img = img.convert("RGB")
        options['quality'] = quality
    elif pil_format == "WEBP":
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        options['quality'] = quality
        options['lossless'] = lossless
    else:
        options['optimize'] = True

    output = io.BytesIO()
    try:
        img.save(output, **options)
    except PILLOW_ERRORS as e:
        raise EncodeError(pil_format, "convert", e)
    return output.getvalue()
