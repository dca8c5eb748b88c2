from enum import Enum


class Methods(str, Enum):
    """Path grammar categories understood by imagor."""
    UNSAFE = "unsafe"
    META = "meta"
    FIT_IN = "fit-in"
    FULL_FIT_IN = "full-fit-in"
    FIT = "fit"
    FULL = "full"
    STRETCH = "stretch"
    ADAPTIVE = "adaptive"
    DIMENSIONS = "dimensions"
    PADDING = "padding"
    SMART = "smart"
    FILTERS = "filters"
    IMAGE = "image"


# Position in the final path, lowest first
METHODS_ORDER = [
    Methods.UNSAFE,
    Methods.META,
    Methods.FIT_IN,
    Methods.FULL_FIT_IN,
    Methods.FIT,
    Methods.FULL,
    Methods.STRETCH,
    Methods.ADAPTIVE,
    Methods.DIMENSIONS,
    Methods.PADDING,
    Methods.SMART,
    Methods.FILTERS,
    Methods.IMAGE,
]

# Rank for anything not listed above, and the default for the image source
DEFAULT_ORDER = 99

_ORDER_LOOKUP = {method.value: index for index, method in enumerate(METHODS_ORDER)}


def order_lookup(method) -> int:
    """Return the rank of a method category (unknown categories sort last)."""
    if isinstance(method, Methods):
        method = method.value
    return _ORDER_LOOKUP.get(method, DEFAULT_ORDER)
