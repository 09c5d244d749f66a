from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np
import shapely.geometry as sg
import trimesh


# ---------------------- Utilidades numéricas ----------------------

def num(x: Any, default: Optional[float] = None) -> Optional[float]:
    if x is None:
        return default
    if isinstance(x, bool):
        return float(x)
    if isinstance(x, (int, float)):
        return float(x)
    try:
        return float(str(x).strip().replace(",", "."))
    except ValueError:
        return default


def flag(x: Any) -> bool:
    """Booleano tolerante: acepta 1/0, "true"/"false", "si"/"no", "on"/"off"."""
    if isinstance(x, str):
        return x.strip().lower() in {"1", "true", "yes", "y", "si", "sí", "on"}
    return bool(x)


# ---------------------- Primitivas ----------------------

def box(extents: Sequence[float], center: Sequence[float] = (0.0, 0.0, 0.0)) -> trimesh.Trimesh:
    """Caja con `extents=(sx, sy, sz)` en mm centrada en `center`."""
    m = trimesh.creation.box(extents=np.asarray(extents, dtype=float))
    m.apply_translation(np.asarray(center, dtype=float))
    return m


def box_between(lo: Sequence[float], hi: Sequence[float]) -> trimesh.Trimesh:
    """Caja alineada a ejes entre las esquinas `lo` y `hi`."""
    lo_ = np.asarray(lo, dtype=float)
    hi_ = np.asarray(hi, dtype=float)
    return box(hi_ - lo_, (lo_ + hi_) * 0.5)


def cylinder(radius: float, height: float, sections: int = 64) -> trimesh.Trimesh:
    """Cilindro centrado en el origen, eje Z, altura `height`."""
    s = int(sections) if sections and sections > 3 else 32
    return trimesh.creation.cylinder(radius=float(radius), height=float(height), sections=s)


def extrude(poly: sg.Polygon, z0: float, z1: float) -> trimesh.Trimesh:
    """Extruye un polígono shapely (plano XY) entre z0 y z1."""
    m = trimesh.creation.extrude_polygon(poly, float(z1 - z0))
    m.apply_translation((0.0, 0.0, float(z0)))
    return m


def concatenate(meshes: Sequence[trimesh.Trimesh]) -> trimesh.Trimesh:
    lst = [m for m in meshes if isinstance(m, trimesh.Trimesh) and len(m.vertices)]
    if not lst:
        return trimesh.Trimesh()
    return trimesh.util.concatenate(lst)
