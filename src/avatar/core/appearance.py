"""Color and animation speed lookup for renderers.

Renderers poll the avatar for a color and a speed multiplier. Both come
from small immutable tables keyed by conversation state and by mood.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Generic, Mapping, NamedTuple, TypeVar

from avatar.utils.logging import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Enum)


class AppearanceError(ValueError):
    """Raised when an appearance table is malformed or incomplete."""


class Color(NamedTuple):
    """RGB color with float channels in [0, 1]."""

    r: float
    g: float
    b: float

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """Parse a ``#RRGGBB`` string."""
        text = value.strip().lstrip("#")
        if len(text) != 6:
            raise AppearanceError(f"Invalid color {value!r}, expected #RRGGBB")
        try:
            channels = [int(text[i:i + 2], 16) for i in (0, 2, 4)]
        except ValueError:
            raise AppearanceError(f"Invalid color {value!r}, expected #RRGGBB")
        return cls(*(c / 255.0 for c in channels))

    def to_hex(self) -> str:
        return "#" + "".join(f"{round(c * 255):02X}" for c in self)


WHITE = Color(1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Style:
    """How the avatar looks in one state or mood."""

    color: Color
    speed: float = 1.0

    @property
    def time_modifier(self) -> float:
        """Inverse of speed, for durations. A still avatar stays at 0."""
        return 1.0 / self.speed if self.speed != 0.0 else 0.0


# Returned for keys missing from a lenient table
NEUTRAL_STYLE = Style(color=WHITE, speed=1.0)


class AppearanceTable(Generic[K]):
    """Immutable mapping from an enum member to its Style.

    A strict table must cover every member of ``key_type`` and raises
    AppearanceError otherwise. A lenient table answers missing keys with
    NEUTRAL_STYLE and logs a warning.
    """

    def __init__(
        self,
        key_type: type[K],
        styles: Mapping[K, Style],
        strict: bool = True,
    ) -> None:
        self.key_type = key_type
        self.strict = strict
        if strict:
            missing = [k.name for k in key_type if k not in styles]
            if missing:
                raise AppearanceError(
                    f"{key_type.__name__} table has no entry for: {', '.join(missing)}"
                )
        self._styles: Mapping[K, Style] = MappingProxyType(dict(styles))

    @classmethod
    def from_config(
        cls,
        key_type: type[K],
        entries: Mapping[str, Mapping[str, Any]],
        strict: bool = True,
    ) -> "AppearanceTable[K]":
        """Build a table from ``{NAME: {"color": "#RRGGBB", "speed": x}}``.

        Raises:
            AppearanceError: On unknown names, bad colors, or (strict) gaps.
        """
        styles: dict[K, Style] = {}
        for name, entry in entries.items():
            try:
                key = key_type[name.upper()]
            except KeyError:
                raise AppearanceError(f"Unknown {key_type.__name__} {name!r}")
            styles[key] = Style(
                color=Color.from_hex(str(entry.get("color", "#FFFFFF"))),
                speed=float(entry.get("speed", 1.0)),
            )
        return cls(key_type, styles, strict=strict)

    def __contains__(self, key: object) -> bool:
        return key in self._styles

    def __len__(self) -> int:
        return len(self._styles)

    def items(self):
        return self._styles.items()

    def style_for(self, key: K) -> Style:
        """Look up the style of ``key``."""
        style = self._styles.get(key)
        if style is None:
            logger.warning(
                "appearance_not_defined",
                table=self.key_type.__name__,
                key=getattr(key, "name", str(key)),
            )
            return NEUTRAL_STYLE
        return style

    def color_for(self, key: K) -> Color:
        return self.style_for(key).color

    def speed_for(self, key: K) -> float:
        return self.style_for(key).speed
