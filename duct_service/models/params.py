# duct_service/models/params.py
"""
Resolución de parámetros de la canaleta + tapa.

Todo lo derivado (paso de aletas, ranuras, taladros, largo de tapa...) se
calcula una sola vez aquí; los builders solo leen campos de `DuctParams`.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ._helpers import num, flag

EPS = 1e-9


class InvalidGeometryError(ValueError):
    """Parametrización que produciría geometría inválida (aborta la generación)."""


class Part(str, Enum):
    DUCT = "duct"
    COVER = "cover"
    BOTH = "both"


class CoverEdge(str, Enum):
    NONE = "none"
    ONE = "one"
    BOTH = "both"


DEFAULTS: Dict[str, Any] = {
    "length": 100.0,            # largo de la canaleta (mm)
    "width": 15.0,              # ancho exterior
    "height": 15.0,             # alto exterior
    "fin_count": 8,             # nº de ranuras
    "fin_width": 3.0,           # espesor de cada aleta
    "fin_resize": False,        # aletas y ranuras del mismo ancho
    "shell": 1.2,               # espesor de pared
    "cover_equal_width": False, # tapa enrasada con las paredes
    "cover_flush_length": False,# topes de tapa dentro de rebajes en la canaleta
    "cover_edge": "none",       # none | one | both
    "cover_tolerance": 0.2,
    "hole_count": 3,
    "hole_diameter": 3.5,
    "hole_offset": 10.0,
    "mf_length": 2.0,           # clip: largo sobre la pared
    "mf_angle": 45.0,           # clip: ángulo de flanco (grados)
    "mf_depth": 0.8,            # clip: profundidad
    "mf_top_offset": 1.0,       # clip: distancia al borde superior
    "text": "",
    "text_depth": 0.6,
    "text_scale": 0.6,          # alto de letra / ancho de tapa
    "text_font": None,
    "part": "both",             # duct | cover | both
    "part_gap": 5.0,            # separación entre piezas en la cama
}

TYPES: Dict[str, str] = {
    "length": "float",
    "width": "float",
    "height": "float",
    "fin_count": "int",
    "fin_width": "float",
    "fin_resize": "bool",
    "shell": "float",
    "cover_equal_width": "bool",
    "cover_flush_length": "bool",
    "cover_edge": "enum[none,one,both]",
    "cover_tolerance": "float",
    "hole_count": "int",
    "hole_diameter": "float",
    "hole_offset": "float",
    "mf_length": "float",
    "mf_angle": "float",
    "mf_depth": "float",
    "mf_top_offset": "float",
    "text": "str",
    "text_depth": "float",
    "text_scale": "float",
    "text_font": "str|null",
    "part": "enum[duct,cover,both]",
    "part_gap": "float",
}

# alias aceptados (contrato genérico de FORGE)
_ALIAS_KEYS: Dict[str, List[str]] = {
    "length": ["length_mm", "l"],
    "width": ["width_mm", "w"],
    "height": ["height_mm", "h"],
    "shell": ["thickness_mm", "thickness", "wall"],
}


# ---------------------- validación del clip ----------------------

def check_clip(length: float, depth: float, angle: float) -> float:
    """
    Valida el clip trapezoidal y devuelve el avance de cada flanco
    (depth·tan(90°−angle)). El rango del ángulo se comprueba antes que el tamaño.
    """
    if not (0.0 < angle <= 90.0):
        raise InvalidGeometryError(
            f"mounting feature angle out of range (0, 90]: {angle}"
        )
    run = depth * math.tan(math.radians(90.0 - angle))
    if run * 2.0 > length + EPS:
        raise InvalidGeometryError(
            "mounting feature length too small for given depth/angle "
            f"({depth} * tan({90.0 - angle}) * 2 = {run * 2.0:.4f} > {length})"
        )
    return run


def _enum(cls, value: Any, name: str):
    raw = str(value if value is not None else "").strip().lower().replace("-", "_")
    try:
        return cls(raw)
    except ValueError:
        choices = ", ".join(m.value for m in cls)
        raise InvalidGeometryError(f"{name} must be one of {{{choices}}}, got {value!r}") from None


def _positive(name: str, value: float) -> None:
    if not value > 0:
        raise InvalidGeometryError(f"{name} must be > 0 (got {value})")


def _non_negative(name: str, value: float) -> None:
    if value < 0:
        raise InvalidGeometryError(f"{name} must be >= 0 (got {value})")


# ---------------------- parámetros resueltos ----------------------

@dataclass(frozen=True)
class DuctParams:
    length: float
    width: float
    height: float
    fin_count: int
    fin_width: float
    shell: float
    cover_equal_width: bool
    cover_flush_length: bool
    cover_edge: CoverEdge
    tolerance: float
    hole_count: int
    hole_diameter: float
    hole_offset: float
    mf_length: float
    mf_angle: float
    mf_depth: float
    mf_top_offset: float
    text: str
    text_depth: float
    text_scale: float
    text_font: Optional[str]
    part: Part
    part_gap: float
    fin_resize: bool = False

    # derivados
    fin_spacing: float = field(init=False)
    slit_width: float = field(init=False)
    hole_spacing: float = field(init=False)
    hole_positions: Tuple[float, ...] = field(init=False)
    clip_run: float = field(init=False)
    tab_inset: float = field(init=False)
    duct_tab_offset: float = field(init=False)
    cover_tab_offset: float = field(init=False)
    cover_outer: float = field(init=False)
    clip_bottom: float = field(init=False)
    skirt_bottom: float = field(init=False)
    edge_count: int = field(init=False)
    cover_start: float = field(init=False)
    cover_end: float = field(init=False)

    def __post_init__(self) -> None:
        def set_(name: str, value: Any) -> None:
            object.__setattr__(self, name, value)

        set_("clip_run", check_clip(self.mf_length, self.mf_depth, self.mf_angle))

        for name in ("length", "width", "height", "shell", "mf_length", "mf_depth"):
            _positive(name, getattr(self, name))
        for name in ("tolerance", "mf_top_offset", "hole_offset", "part_gap"):
            _non_negative(name, getattr(self, name))
        if self.fin_count < 1:
            raise InvalidGeometryError(f"fin_count must be >= 1 (got {self.fin_count})")
        if self.hole_count < 0:
            raise InvalidGeometryError(f"hole_count must be >= 0 (got {self.hole_count})")

        # --- aletas
        if self.fin_resize:
            set_("fin_width", self.length / (2 * self.fin_count + 1))
        _positive("fin_width", self.fin_width)
        set_("fin_spacing", (self.length - self.fin_width) / self.fin_count)
        set_("slit_width", self.fin_spacing - self.fin_width)
        if self.slit_width <= EPS:
            raise InvalidGeometryError(
                f"fins do not fit: slit width {self.slit_width:.4f} <= 0 "
                f"(length={self.length}, fin_count={self.fin_count}, fin_width={self.fin_width})"
            )

        # --- taladros
        if self.hole_count > 1:
            if 2.0 * self.hole_offset >= self.length:
                raise InvalidGeometryError("hole_offset leaves no room between the end holes")
            spacing = (self.length - 2.0 * self.hole_offset) / (self.hole_count - 1)
            positions = tuple(self.hole_offset + i * spacing for i in range(self.hole_count))
        elif self.hole_count == 1:
            spacing = self.length / 2.0
            positions = (self.length / 2.0,)
        else:
            spacing = 0.0
            positions = ()
        set_("hole_spacing", spacing)
        set_("hole_positions", positions)
        if self.hole_count > 0:
            _positive("hole_diameter", self.hole_diameter)
            if self.hole_diameter >= self.width - 2.0 * self.shell:
                raise InvalidGeometryError("hole_diameter does not fit inside the duct floor")

        # --- clip / tapa (sección)
        inset = self.shell + self.tolerance if self.cover_equal_width else 0.0
        set_("tab_inset", inset)
        set_("duct_tab_offset", self.width / 2.0 - inset)
        set_("cover_tab_offset", self.duct_tab_offset + self.tolerance)
        set_("cover_outer", self.width / 2.0 if self.cover_equal_width else self.cover_tab_offset + self.shell)
        set_("clip_bottom", self.height - self.mf_top_offset - self.mf_length)
        set_("skirt_bottom", self.clip_bottom - self.shell)

        if self.interior_step_x <= EPS:
            raise InvalidGeometryError(
                "duct too narrow for shell/clip depth: no interior left "
                f"(width={self.width}, shell={self.shell}, mf_depth={self.mf_depth})"
            )
        if self.step_start <= self.shell + EPS:
            raise InvalidGeometryError(
                "duct too low for the mounting feature: clip zone reaches the floor "
                f"(height={self.height}, mf_top_offset={self.mf_top_offset}, mf_length={self.mf_length})"
            )

        # --- topes de tapa (largo)
        edges = {CoverEdge.NONE: 0, CoverEdge.ONE: 1, CoverEdge.BOTH: 2}[self.cover_edge]
        set_("edge_count", edges)
        if self.cover_flush_length:
            start, end = 0.0, self.length
            if edges and self.shell + self.tolerance >= self.fin_width:
                raise InvalidGeometryError("end recess would remove the end fins entirely")
        else:
            reach = self.shell + self.tolerance
            start = -reach if edges >= 1 else 0.0
            end = self.length + reach if edges == 2 else self.length
        set_("cover_start", start)
        set_("cover_end", end)

        # --- texto
        if self.text:
            if not (0.0 < self.text_depth < self.shell):
                raise InvalidGeometryError(
                    f"text_depth must be within (0, shell={self.shell}) (got {self.text_depth})"
                )
            if not (0.0 < self.text_scale <= 1.0):
                raise InvalidGeometryError(f"text_scale must be within (0, 1] (got {self.text_scale})")

    # ---- geometría de la sección (lectura cómoda para profiles.py)

    @property
    def interior_x(self) -> float:
        """Cara interior de la pared en la zona baja."""
        return self.width / 2.0 - self.shell

    @property
    def interior_step_x(self) -> float:
        """Cara interior de la pared detrás del clip (y del rebaje)."""
        return self.duct_tab_offset - self.mf_depth - self.shell

    @property
    def thin_zone_bottom(self) -> float:
        """Cota donde la pared exterior empieza a rebajarse."""
        if self.cover_equal_width:
            return self.skirt_bottom - self.tolerance
        return self.clip_bottom

    @property
    def step_start(self) -> float:
        # escalón a 45°: sube lo mismo que entra
        return self.thin_zone_bottom - (self.interior_x - self.interior_step_x)

    @property
    def cover_length(self) -> float:
        return self.cover_end - self.cover_start

    @property
    def cover_top(self) -> float:
        return self.height + self.shell

    @property
    def edge_at_end(self) -> bool:
        return self.edge_count == 2


def _get(params: Mapping[str, Any], name: str) -> Any:
    if name in params and params[name] is not None:
        return params[name]
    for alias in _ALIAS_KEYS.get(name, []):
        if alias in params and params[alias] is not None:
            return params[alias]
    return DEFAULTS[name]


def _float(params: Mapping[str, Any], name: str) -> float:
    v = num(_get(params, name))
    if v is None:
        raise InvalidGeometryError(f"{name} must be a number (got {_get(params, name)!r})")
    if not math.isfinite(v):
        raise InvalidGeometryError(f"{name} must be a finite number (got {_get(params, name)!r})")
    return v


def _int(params: Mapping[str, Any], name: str) -> int:
    v = _float(params, name)
    if not float(v).is_integer():
        raise InvalidGeometryError(f"{name} must be an integer (got {v})")
    return int(v)


def resolve(params: Optional[Mapping[str, Any]] = None) -> DuctParams:
    """Mezcla `params` con DEFAULTS, valida y devuelve los derivados."""
    p: Mapping[str, Any] = params or {}
    if isinstance(p, DuctParams):
        return p
    font = _get(p, "text_font")
    return DuctParams(
        length=_float(p, "length"),
        width=_float(p, "width"),
        height=_float(p, "height"),
        fin_count=_int(p, "fin_count"),
        fin_width=_float(p, "fin_width"),
        fin_resize=flag(_get(p, "fin_resize")),
        shell=_float(p, "shell"),
        cover_equal_width=flag(_get(p, "cover_equal_width")),
        cover_flush_length=flag(_get(p, "cover_flush_length")),
        cover_edge=_enum(CoverEdge, _get(p, "cover_edge"), "cover_edge"),
        tolerance=_float(p, "cover_tolerance"),
        hole_count=_int(p, "hole_count"),
        hole_diameter=_float(p, "hole_diameter"),
        hole_offset=_float(p, "hole_offset"),
        mf_length=_float(p, "mf_length"),
        mf_angle=_float(p, "mf_angle"),
        mf_depth=_float(p, "mf_depth"),
        mf_top_offset=_float(p, "mf_top_offset"),
        text=str(_get(p, "text") or "").strip(),
        text_depth=_float(p, "text_depth"),
        text_scale=_float(p, "text_scale"),
        text_font=str(font) if font else None,
        part=_enum(Part, _get(p, "part"), "part"),
        part_gap=_float(p, "part_gap"),
    )


__all__ = [
    "DEFAULTS",
    "TYPES",
    "CoverEdge",
    "DuctParams",
    "InvalidGeometryError",
    "Part",
    "check_clip",
    "resolve",
]
