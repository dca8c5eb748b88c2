import hashlib
import json
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from imagor_url.core.errors import ConfigurationError, SigningPreconditionError, ValidationError
from imagor_url.core.logging import get_logger
from imagor_url.services.methods import DEFAULT_ORDER, Methods, order_lookup
from imagor_url.services.signing import Signer, get_signer

logger = get_logger("builder")

# Keep the original width/height of the source image
ORIGINAL = "orig"

FORMATS = ("jpeg", "png", "webp", "gif", "tiff", "avif", "jp2")
DEFAULT_FORMAT = "jpeg"
DEFAULT_QUALITY = 70

MEMO_MAX_ITEMS = 1000

Dimension = Union[int, str]
Number = Union[int, float]
Point = Tuple[Number, Number]


class Segment(NamedTuple):
    """One ranked token of the output path."""
    order: int
    value: str


class BuilderConfig(BaseModel):
    """Immutable configuration of a builder instance."""
    server: Optional[str] = None
    secret: Optional[str] = None
    default_filters: Tuple[str, ...] = ()
    cache_ttl_seconds: int = Field(default=0, ge=0)
    # Seed the unsafe marker into every request of this instance
    unsafe: bool = False

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_server(self) -> "BuilderConfig":
        if not self.server or not self.server.strip():
            raise ConfigurationError("Missing API URL for ImagorUrlBuilder")
        return self

    @property
    def base_url(self) -> str:
        return self.server.strip().rstrip("/")


def _fmt(value) -> str:
    """Render a filter argument; integral floats lose their decimal part."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _directive(name: str, *args) -> str:
    return f"{name}({','.join(_fmt(arg) for arg in args)})"


def _dimension(value: Dimension, field: str) -> str:
    if value == ORIGINAL:
        return ORIGINAL
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"expected a non-negative integer or '{ORIGINAL}', got {value!r}", field=field)
    return str(value)


class ImagorUrlBuilder:
    """Fluent builder for signed imagor URLs.

    Chained calls accumulate ranked path segments and a de-duplicated set of
    filter directives. ``get_url()`` compiles them into a path, signs it
    (unless the ``unsafe`` marker is present) and resets the builder so the
    instance can serve the next request.

    Instances are not safe for concurrent mutation; wrap a whole chain in
    ``with builder.exclusive():`` when sharing one between threads.
    """

    def __init__(self, config: BuilderConfig, signer: Optional[Signer] = None):
        self.config = config
        self._signer = signer
        self._parts: List[Segment] = []
        # dict keys keep insertion order, values are unused
        self._filters: Dict[str, None] = {}
        self._memo: Dict[str, str] = {}
        self._lock = threading.RLock()
        self.reset()

    @classmethod
    def create(cls, server: Optional[str] = None, secret: Optional[str] = None, default_filters=(),
               cache_ttl_seconds: int = 0, unsafe: bool = False,
               signer: Optional[Signer] = None) -> "ImagorUrlBuilder":
        """Static factory taking the configuration as keyword arguments."""
        config = BuilderConfig(
            server=server,
            secret=secret,
            default_filters=tuple(default_filters),
            cache_ttl_seconds=cache_ttl_seconds,
            unsafe=unsafe,
        )
        return cls(config, signer=signer)

    @property
    def signer(self) -> Signer:
        if self._signer is None:
            self._signer = get_signer()
        return self._signer

    @property
    def parts(self) -> List[Segment]:
        return list(self._parts)

    @property
    def filters(self) -> List[str]:
        return list(self._filters)

    @contextmanager
    def exclusive(self) -> Iterator["ImagorUrlBuilder"]:
        """Hold the builder for one logical request."""
        with self._lock:
            yield self

    def _push(self, method: Methods, value: str) -> "ImagorUrlBuilder":
        self._parts.append(Segment(order_lookup(method), value))
        return self

    def _add_filter(self, directive: str) -> "ImagorUrlBuilder":
        self._filters[directive] = None
        return self

    # Mode flags

    def meta(self) -> "ImagorUrlBuilder":
        """Return JSON metadata of the image instead of the image itself."""
        return self._push(Methods.META, Methods.META.value)

    def unsafe(self) -> "ImagorUrlBuilder":
        """Skip signing; the server must accept unsafe URLs."""
        return self._push(Methods.UNSAFE, Methods.UNSAFE.value)

    def fit_in(self) -> "ImagorUrlBuilder":
        """Fit the image inside the box without cropping."""
        return self._push(Methods.FIT_IN, Methods.FIT_IN.value)

    def full_fit_in(self) -> "ImagorUrlBuilder":
        """Like fit-in, but fit on the smallest dimension."""
        return self._push(Methods.FULL_FIT_IN, Methods.FULL_FIT_IN.value)

    def fit(self) -> "ImagorUrlBuilder":
        return self._push(Methods.FIT, Methods.FIT.value)

    def full(self) -> "ImagorUrlBuilder":
        return self._push(Methods.FULL, Methods.FULL.value)

    def stretch(self) -> "ImagorUrlBuilder":
        """Resize to the exact box, ignoring aspect ratio."""
        return self._push(Methods.STRETCH, Methods.STRETCH.value)

    def adaptive(self) -> "ImagorUrlBuilder":
        return self._push(Methods.ADAPTIVE, Methods.ADAPTIVE.value)

    def smart(self) -> "ImagorUrlBuilder":
        """Let the server detect the focal area when cropping."""
        return self._push(Methods.SMART, Methods.SMART.value)

    # Dimensions and padding

    def dimensions(self, width: Dimension, height: Dimension) -> "ImagorUrlBuilder":
        """Set output size; 0 scales proportionally, ORIGINAL keeps the source size.

        Repeated calls append further dimension segments instead of replacing
        the previous one.
        """
        value = f"{_dimension(width, 'width')}x{_dimension(height, 'height')}"
        return self._push(Methods.DIMENSIONS, value)

    def width(self, width: Dimension) -> "ImagorUrlBuilder":
        return self._push(Methods.DIMENSIONS, f"{_dimension(width, 'width')}x0")

    def height(self, height: Dimension) -> "ImagorUrlBuilder":
        return self._push(Methods.DIMENSIONS, f"0x{_dimension(height, 'height')}")

    def original_size(self) -> "ImagorUrlBuilder":
        return self._push(Methods.DIMENSIONS, f"{ORIGINAL}x{ORIGINAL}")

    def proportion(self, percentage: Number) -> "ImagorUrlBuilder":
        """Scale to a percentage of the original size."""
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)) or percentage <= 0:
            raise ValidationError(f"expected a positive number, got {percentage!r}", field="percentage")
        return self._push(Methods.DIMENSIONS, f"{_fmt(percentage)}p")

    def padding(self, left_top: Point, right_bottom: Optional[Point] = None) -> "ImagorUrlBuilder":
        """Add padding as (x, y) pairs; the second pair is optional."""
        value = f"{_fmt(left_top[0])}x{_fmt(left_top[1])}"
        if right_bottom is not None:
            value += f":{_fmt(right_bottom[0])}x{_fmt(right_bottom[1])}"
        return self._push(Methods.PADDING, value)

    # Filters

    def crop(self, left: Number, top: Number, right: Number, bottom: Number) -> "ImagorUrlBuilder":
        """Manual crop applied before any resizing."""
        return self._add_filter(_directive("crop", left, top, right, bottom))

    def focal(self, left: Number, top: Number, right: Number, bottom: Number) -> "ImagorUrlBuilder":
        return self._add_filter(f"focal({_fmt(left)}x{_fmt(top)}:{_fmt(right)}x{_fmt(bottom)})")

    def trim(self, tolerance: Optional[int] = None, based_on: Optional[str] = None) -> "ImagorUrlBuilder":
        """Remove surrounding space.

        Args:
            tolerance: Colour tolerance (0-442 for RGB)
            based_on: 'top-left' or 'bottom-right'; only sent with a tolerance
        """
        if tolerance is not None and based_on:
            return self._add_filter(_directive("trim", tolerance, based_on))
        if tolerance is not None:
            return self._add_filter(_directive("trim", tolerance))
        return self._add_filter("trim()")

    def fill(self, color: str) -> "ImagorUrlBuilder":
        """Fill transparent areas with a hex colour, 'blur', 'auto' or 'none'."""
        return self._add_filter(_directive("fill", color))

    def blur(self, radius: Number, sigma: Optional[Number] = None) -> "ImagorUrlBuilder":
        if sigma is not None:
            return self._add_filter(_directive("blur", radius, sigma))
        return self._add_filter(_directive("blur", radius))

    def background(self, color: str) -> "ImagorUrlBuilder":
        return self._add_filter(_directive("background", color))

    def rotate(self, angle: Number) -> "ImagorUrlBuilder":
        return self._add_filter(_directive("rotate", angle))

    def vflip(self) -> "ImagorUrlBuilder":
        return self._add_filter("vflip()")

    def hflip(self) -> "ImagorUrlBuilder":
        return self._add_filter("hflip()")

    def upscale(self) -> "ImagorUrlBuilder":
        """Allow fit-in to enlarge images smaller than the box."""
        return self._add_filter("upscale()")

    def label(self, text: str, x: Union[Number, str], y: Union[Number, str], size: Number,
              color: str, alpha: Optional[Number] = None, font: Optional[str] = None) -> "ImagorUrlBuilder":
        """Draw a text label.

        Args:
            text: Text to draw, URL encoded if needed
            x: 'left', 'right', 'center' or a pixel offset
            y: 'top', 'bottom', 'center' or a pixel offset
            size: Font size
            color: Hex colour without '#', or a colour name
            alpha: Transparency, 0 (opaque) to 100
            font: Font name
        """
        params = [text, x, y, size, color]
        if alpha is not None:
            params.append(alpha)
        if font is not None:
            params.append(font)
        return self._add_filter(_directive("label", *params))

    def round_corner(self, radius_x: Number, radius_y: Optional[Number] = None,
                     color: Optional[str] = None) -> "ImagorUrlBuilder":
        params = [radius_x]
        if radius_y is not None:
            params.append(radius_y)
        if color is not None:
            params.append(color)
        return self._add_filter(_directive("round_corner", *params))

    def page(self, num: int) -> "ImagorUrlBuilder":
        """Page of a PDF or frame of an animated image, starting at 1."""
        return self._add_filter(_directive("page", num))

    def dpi(self, num: int) -> "ImagorUrlBuilder":
        return self._add_filter(_directive("dpi", num))

    def watermark(self, url: str, x: Union[Number, str], y: Union[Number, str], alpha: Number,
                  w_ratio: Optional[Number] = None, h_ratio: Optional[Number] = None) -> "ImagorUrlBuilder":
        """Overlay another image; x/y also accept 'repeat'."""
        params = [url, x, y, alpha]
        if w_ratio is not None:
            params.append(w_ratio)
        if h_ratio is not None:
            params.append(h_ratio)
        return self._add_filter(_directive("watermark", *params))

    def format(self, format: str) -> "ImagorUrlBuilder":
        if format not in FORMATS:
            raise ValidationError(f"unsupported format, must be one of: {', '.join(FORMATS)}", field="format")
        return self._add_filter(_directive("format", format))

    def quality(self, quality: int) -> "ImagorUrlBuilder":
        return self._add_filter(_directive("quality", quality))

    def progressive(self) -> "ImagorUrlBuilder":
        return self._add_filter("progressive()")

    def strip_metadata(self) -> "ImagorUrlBuilder":
        """Shorthand for strip_exif() and strip_icc()."""
        self._add_filter("strip_exif()")
        return self._add_filter("strip_icc()")

    def filter(self, filter: str) -> "ImagorUrlBuilder":
        """Add a raw directive, e.g. 'grayscale()'."""
        return self._add_filter(filter)

    def src(self, src: str, order: int = DEFAULT_ORDER) -> "ImagorUrlBuilder":
        """Set the source image path or URL."""
        self._parts.append(Segment(order, src))
        return self

    # Compilation

    def get_url(self) -> str:
        """Compile, sign and return the URL, then reset the builder.

        Identical accumulated state returns the memoized URL, unless a cache
        TTL is configured.

        Raises:
            SigningPreconditionError: No secret configured and no unsafe marker;
                the accumulated state is left untouched.
            SigningUnavailableError: The signing backend cannot compute HMAC-SHA1.
        """
        with self._lock:
            if not self._is_unsafe() and not self.config.secret:
                raise SigningPreconditionError(context={"server": self.config.base_url})

            key = self._state_key()
            try:
                url = self._memo.get(key)
                if url is None:
                    url = self._generate_url()
                    # expire() depends on the current time, never reuse it
                    if self.config.cache_ttl_seconds == 0:
                        self._remember(key, url)
                else:
                    logger.debug("Returning memoized imagor URL")
                return url
            finally:
                self.reset()

    def clear_cache(self) -> None:
        """Drop all memoized URLs."""
        with self._lock:
            self._memo.clear()

    def _is_unsafe(self) -> bool:
        return any(part.value == Methods.UNSAFE.value for part in self._parts)

    def _state_key(self) -> str:
        state = {
            "parts": [list(part) for part in self._parts],
            "filters": list(self._filters),
        }
        return hashlib.sha256(json.dumps(state).encode()).hexdigest()

    def _remember(self, key: str, url: str) -> None:
        if len(self._memo) >= MEMO_MAX_ITEMS:
            # Evict the oldest entry
            self._memo.pop(next(iter(self._memo)))
        self._memo[key] = url

    def _compiled_filters(self) -> List[str]:
        filters = list(self._filters)
        if not any(f.startswith("format(") for f in filters):
            filters.append(_directive("format", DEFAULT_FORMAT))
        if not any(f.startswith("quality(") for f in filters):
            filters.append(_directive("quality", DEFAULT_QUALITY))
        if self.config.cache_ttl_seconds > 0:
            expires_at = int(time.time() * 1000) + self.config.cache_ttl_seconds * 1000
            filters.append(_directive("expire", expires_at))
        return filters

    def compile_path(self) -> str:
        """Join the ranked segments and the filters block into the unsigned path."""
        filters = self._compiled_filters()
        block = f"filters:{':'.join(filters)}" if filters else ""
        parts = [*self._parts, Segment(order_lookup(Methods.FILTERS), block)]
        # sorted() is stable, equal ranks keep call order
        ordered = sorted((part for part in parts if part.value != ""), key=lambda part: part.order)
        return "/".join(part.value for part in ordered)

    def _generate_url(self) -> str:
        path = self.compile_path()
        if self._is_unsafe():
            url = f"{self.config.base_url}/{path}"
        else:
            signature = self.signer.sign(path, self.config.secret)
            url = f"{self.config.base_url}/{signature}/{path}"
        logger.debug(f"Compiled imagor URL with {len(self._parts)} segments and {len(self._filters)} filters")
        return url

    def reset(self) -> None:
        """Discard the accumulated request, keeping configured defaults."""
        self._parts = []
        self._filters = {directive: None for directive in self.config.default_filters}
        if self.config.unsafe:
            self.unsafe()
