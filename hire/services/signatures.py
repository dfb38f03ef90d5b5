"""Freehand signature decoding and rendering.

The signature pad in the browser records pointer strokes and also exports
the canvas as a PNG data URL. The server prefers re-rendering the strokes so
every stored signature has the same size and pen; the data URL is the
fallback for clients that only send the image.
"""

from __future__ import annotations

import base64
import binascii
import io
import json
import logging

from PIL import Image, ImageDraw, UnidentifiedImageError

from ..exceptions import SignatureError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/png;base64,"
PEN_WIDTH = 2
PEN_COLOR = (0, 0, 0, 255)


def encode_data_url(png_bytes: bytes) -> str:
    return DATA_URL_PREFIX + base64.b64encode(png_bytes).decode("ascii")


def decode_data_url(data_url: str) -> bytes:
    """Return the PNG bytes of a ``data:image/png;base64,...`` URL."""
    if not data_url or not data_url.startswith(DATA_URL_PREFIX):
        raise SignatureError("Signature must be a PNG data URL.")
    try:
        payload = base64.b64decode(data_url[len(DATA_URL_PREFIX) :], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SignatureError("Signature image is corrupted.") from exc
    try:
        with Image.open(io.BytesIO(payload)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise SignatureError("Signature image is corrupted.") from exc
    return payload


def parse_strokes(raw: str | list | None) -> list[list[tuple[float, float]]]:
    """Turn the pad's JSON (a list of strokes of ``{x, y}`` points) into tuples."""
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise SignatureError("Signature strokes are not valid JSON.") from exc
    if not isinstance(raw, list):
        raise SignatureError("Signature strokes must be a list.")

    strokes = []
    for stroke in raw:
        if not isinstance(stroke, list):
            raise SignatureError("Each signature stroke must be a list of points.")
        points = []
        for point in stroke:
            try:
                points.append((float(point["x"]), float(point["y"])))
            except (KeyError, TypeError, ValueError) as exc:
                raise SignatureError("Signature point is missing coordinates.") from exc
        if points:
            strokes.append(points)
    return strokes


def render_strokes(strokes, width: int, height: int) -> bytes:
    """Draw strokes as round-capped black lines on a transparent PNG."""
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    radius = PEN_WIDTH / 2
    for stroke in strokes:
        if len(stroke) == 1:
            x, y = stroke[0]
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=PEN_COLOR)
            continue
        draw.line(stroke, fill=PEN_COLOR, width=PEN_WIDTH, joint="curve")
        for x, y in (stroke[0], stroke[-1]):
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=PEN_COLOR)

    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def is_blank(png_bytes: bytes) -> bool:
    """True when the image has no visible ink."""
    with Image.open(io.BytesIO(png_bytes)) as image:
        rgba = image.convert("RGBA")
    alpha_min, alpha_max = rgba.getchannel("A").getextrema()
    if alpha_max == 0:
        return True
    if alpha_min == 255:
        # Opaque export (e.g. white background): look for any non-uniform pixel.
        extrema = rgba.convert("L").getextrema()
        return extrema[0] == extrema[1]
    return False


def signature_from_payload(
    data_url: str | None,
    strokes_json: str | None,
    width: int,
    height: int,
) -> bytes:
    """Build the signature PNG from the pad's form values or raise SignatureError."""
    strokes = parse_strokes(strokes_json)
    if strokes:
        png = render_strokes(strokes, width, height)
    elif data_url:
        png = decode_data_url(data_url)
    else:
        raise SignatureError()

    if is_blank(png):
        logger.info("Rejected blank signature")
        raise SignatureError()
    return png
