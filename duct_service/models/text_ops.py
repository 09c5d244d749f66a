from __future__ import annotations

import os
from functools import reduce
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import trimesh

# -------------------------------------------------------------------
# Matplotlib seguro en headless (Render/containers)
# -------------------------------------------------------------------
os.environ.setdefault("MPLBACKEND", "Agg")
os.environ.setdefault("MPLCONFIGDIR", "/tmp/mpl")
Path(os.environ["MPLCONFIGDIR"]).mkdir(parents=True, exist_ok=True)

from matplotlib.font_manager import FontProperties  # noqa: E402
from matplotlib.textpath import TextPath  # noqa: E402
from shapely.geometry import MultiPolygon, Polygon  # noqa: E402

from ._booleans import difference  # noqa: E402
from ._helpers import concatenate  # noqa: E402
from .params import DuctParams  # noqa: E402

DEBUG = os.getenv("DEBUG_FORGE_TEXT", os.getenv("DEBUG_FORGE", "0")) == "1"

# margen sobre el techo de la tapa para que el grabado corte limpio
_CLEAR = 0.1
# fracción del largo de la tapa que puede ocupar el texto
_FIT = 0.9


def _log(*a: object) -> None:
    if DEBUG:
        print("[forge:text]", *a)


# ------------------------ Resolución de fuente ------------------------ #

def resolve_font(user_font: Optional[str]) -> Optional[str]:
    """
    Devuelve ruta absoluta a una TTF válida:
    1) op.font
    2) FORGE_DEFAULT_FONT (env)
    3) assets del paquete
    4) rutas típicas de sistema
    Si no hay ninguna, None (se usa la familia por defecto de matplotlib).
    """
    candidates: List[Union[str, Path]] = []

    if user_font:
        candidates.append(user_font)

    env_font = os.getenv("FORGE_DEFAULT_FONT", "").strip()
    if env_font:
        candidates.append(env_font)

    here = Path(__file__).resolve().parent
    candidates += [
        here / "assets" / "fonts" / "DejaVuSans.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/local/share/fonts/DejaVuSans.ttf",
    ]

    extra_dirs = [here / "assets" / "fonts", Path("/usr/share/fonts"), Path("/usr/local/share/fonts")]

    for c in candidates:
        p = Path(str(c))
        if p.is_file():
            _log("font:", p)
            return str(p)
        if not p.is_absolute():
            for d in extra_dirs:
                pp = d / p
                if pp.is_file():
                    _log("font:", pp)
                    return str(pp)

    _log("font: NONE found")
    return None


def _font_props(font_spec: Optional[str]) -> FontProperties:
    path = resolve_font(font_spec)
    if path:
        return FontProperties(fname=path)
    # nombre de familia (p.ej. "DejaVu Sans") o la de matplotlib
    return FontProperties(family=font_spec or "DejaVu Sans")


# ------------------------ Texto -> sólido ------------------------ #

def text_outline(text: str, height: float, font_spec: Optional[str] = None) -> Optional[MultiPolygon]:
    """
    Contorno 2D del texto centrado en el origen, alto total = `height` (mm).
    Los huecos (o, a, e...) se resuelven por paridad par-impar.
    """
    if not text:
        return None

    tp = TextPath((0, 0), text, size=1.0, prop=_font_props(font_spec))
    rings = [np.asarray(r, dtype=float) for r in tp.to_polygons() if len(r) >= 3]
    if not rings:
        _log("TextPath.to_polygons() vacío")
        return None

    all_pts = np.vstack(rings)
    mn, mx = all_pts.min(axis=0), all_pts.max(axis=0)
    scale = float(height) / max(float(mx[1] - mn[1]), 1e-6)
    center = (mn + mx) * 0.5

    polys: List[Polygon] = []
    for r in rings:
        p = Polygon((r - center) * scale)
        if not p.is_valid:
            p = p.buffer(0)
        if not p.is_empty:
            polys.append(p)
    if not polys:
        return None

    geom = reduce(lambda a, b: a.symmetric_difference(b), polys)
    parts = list(geom.geoms) if hasattr(geom, "geoms") else [geom]
    parts = [g for g in parts if isinstance(g, Polygon) and not g.is_empty]
    return MultiPolygon(parts) if parts else None


def make_text_solid(text: str, height: float, depth: float, font_spec: Optional[str] = None) -> Optional[trimesh.Trimesh]:
    """
    Crea un sólido 3D del texto en el plano XY:
      - height (mm) = alto de la línea de texto
      - depth  (mm) = extrusión en +Z desde Z=0
    """
    outline = text_outline(text, height, font_spec)
    if outline is None:
        _log("no solid generated for text")
        return None
    solids = [trimesh.creation.extrude_polygon(poly, height=float(depth)) for poly in outline.geoms]
    return concatenate(solids)


# ------------------------ Grabado sobre la tapa ------------------------ #

# (u, v, n) del texto -> (z, x, y) de la tapa: lectura a lo largo del largo
_TEXT_TO_COVER = np.array([
    [0.0, 1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0, 0.0],
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 0.0, 0.0, 1.0],
])


def place_text(solid: trimesh.Trimesh, p: DuctParams) -> trimesh.Trimesh:
    """Coloca el texto sobre el techo de la tapa, centrado y a lo largo del eje."""
    placed = solid.copy()
    ext = placed.extents
    fit = min(1.0, _FIT * p.cover_length / max(float(ext[0]), 1e-6))
    if fit < 1.0:
        _log("text shrunk to fit:", round(fit, 3))
        placed.apply_scale([fit, fit, 1.0])
    placed.apply_transform(_TEXT_TO_COVER)
    z_mid = (p.cover_start + p.cover_end) * 0.5
    placed.apply_translation((0.0, p.cover_top - p.text_depth, z_mid))
    return placed


def engrave_cover(cover: trimesh.Trimesh, p: DuctParams) -> trimesh.Trimesh:
    """Graba `p.text` en el techo de la tapa (coordenadas de construcción)."""
    if not p.text:
        return cover
    height = p.text_scale * 2.0 * p.cover_outer
    solid = make_text_solid(p.text, height, p.text_depth + _CLEAR, p.text_font)
    if solid is None or len(solid.vertices) == 0:
        _log("skip: no solid for text", repr(p.text))
        return cover
    return difference(cover, [place_text(solid, p)])


__all__ = ["resolve_font", "text_outline", "make_text_solid", "place_text", "engrave_cover"]
