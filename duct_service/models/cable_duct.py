# duct_service/models/cable_duct.py
# Canaleta ranurada + tapa a presión (trimesh + shapely, booleanos con manifold3d)
from __future__ import annotations

import math
import os
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import trimesh
from trimesh.transformations import rotation_matrix

from ._booleans import difference, union
from ._helpers import box_between, concatenate, cylinder, extrude
from .params import DEFAULTS, TYPES, DuctParams, Part, resolve
from .profiles import cover_profile, duct_profile, rib_profile
from .text_ops import engrave_cover

NAME = "cable_duct"
SLUGS = ["cable-duct", "slotted_duct", "wiring_duct", "canaleta", "canaleta_ranurada"]

DEBUG = os.getenv("DEBUG_FORGE", "0") == "1"

# margen para que los cortadores atraviesen el sólido
_OVER = 1.0

# construcción (x ancho, y alto, z largo) -> impresión (X largo, Y ancho, Z alto)
TO_PRINT = np.array([
    [0.0, 0.0, 1.0, 0.0],
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, 0.0],
    [0.0, 0.0, 0.0, 1.0],
])


def _log(*a: object) -> None:
    if DEBUG:
        print("[forge:duct]", *a)


# ---------------------- cortadores ----------------------

def fin_slots(p: DuctParams) -> List[trimesh.Trimesh]:
    """Ranuras entre aletas: atraviesan ambas paredes desde el suelo."""
    hw = p.width / 2.0 + _OVER
    slots = []
    for i in range(p.fin_count):
        z0 = p.fin_width + i * p.fin_spacing
        slots.append(box_between((-hw, p.shell, z0), (hw, p.height + _OVER, z0 + p.slit_width)))
    return slots


def mounting_holes(p: DuctParams) -> List[trimesh.Trimesh]:
    """Taladros de fijación en el suelo, centrados en el ancho."""
    drills = []
    h = 2.0 * p.shell + 2.0 * _OVER
    for z in p.hole_positions:
        c = cylinder(radius=p.hole_diameter * 0.5, height=h, sections=48)
        c.apply_transform(rotation_matrix(math.pi / 2.0, [1, 0, 0]))  # eje Z -> eje Y
        c.apply_translation((0.0, p.shell * 0.5, z))
        drills.append(c)
    return drills


def end_recesses(p: DuctParams) -> List[trimesh.Trimesh]:
    """Rebajes en los extremos donde asientan los topes de una tapa enrasada en largo."""
    if not (p.cover_flush_length and p.edge_count):
        return []
    hw = p.width / 2.0 + _OVER
    depth = p.shell + p.tolerance
    y0 = p.skirt_bottom - p.tolerance
    out = [box_between((-hw, y0, -_OVER), (hw, p.height + _OVER, depth))]
    if p.edge_at_end:
        out.append(box_between((-hw, y0, p.length - depth), (hw, p.height + _OVER, p.length + _OVER)))
    return out


# ---------------------- sólidos ----------------------

def make_duct(p: DuctParams) -> trimesh.Trimesh:
    """Canaleta en coordenadas de construcción (sin orientar)."""
    body = extrude(duct_profile(p), 0.0, p.length)
    cutters = fin_slots(p) + mounting_holes(p) + end_recesses(p)
    _log("duct cutters:", len(cutters))
    return difference(body, cutters)


def edge_ribs(p: DuctParams) -> List[trimesh.Trimesh]:
    """Topes de `shell` de espesor en los extremos de la tapa."""
    if not p.edge_count:
        return []
    prof = rib_profile(p)
    if p.cover_flush_length:
        spans = [(0.0, p.shell), (p.length - p.shell, p.length)]
    else:
        spans = [(p.cover_start, p.cover_start + p.shell), (p.cover_end - p.shell, p.cover_end)]
    return [extrude(prof, z0, z1) for z0, z1 in spans[: p.edge_count]]


def make_cover(p: DuctParams) -> trimesh.Trimesh:
    """Tapa en coordenadas de construcción (montada sobre la canaleta)."""
    cover = extrude(cover_profile(p), p.cover_start, p.cover_end)
    ribs = edge_ribs(p)
    if ribs:
        cover = union([cover] + ribs)
    return engrave_cover(cover, p)


# ---------------------- orientación ----------------------

def orient_duct(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    out = mesh.copy()
    out.apply_transform(TO_PRINT)
    return out


def orient_cover(mesh: trimesh.Trimesh, p: DuctParams) -> trimesh.Trimesh:
    """Tapa boca abajo: techo sobre la cama (giro de 180° alrededor del largo)."""
    flip = rotation_matrix(math.pi, [0, 0, 1])
    flip[1, 3] = p.cover_top
    out = mesh.copy()
    out.apply_transform(TO_PRINT @ flip)
    return out


# ---------------------- selector de piezas ----------------------

def make_parts(params: Optional[Mapping[str, Any]] = None) -> Dict[str, trimesh.Trimesh]:
    """
    Devuelve las piezas pedidas ya orientadas para imprimir:
      {"duct": Trimesh} / {"cover": Trimesh} / ambas.
    Con `part=both` la tapa se separa en Y para que no se solapen.
    """
    p = resolve(params)
    parts: Dict[str, trimesh.Trimesh] = {}

    if p.part in (Part.DUCT, Part.BOTH):
        parts["duct"] = orient_duct(make_duct(p))

    if p.part in (Part.COVER, Part.BOTH):
        cover = orient_cover(make_cover(p), p)
        if p.part is Part.BOTH:
            cover.apply_translation((0.0, p.width / 2.0 + p.part_gap + p.cover_outer, 0.0))
        parts["cover"] = cover

    for name, mesh in parts.items():
        mesh.metadata = {"name": f"{NAME}_{name}", "unit": "mm"}
    return parts


def make_model(params: Dict[str, Any]) -> trimesh.Trimesh:
    """Builder principal: una pieza o ambas concatenadas (cuerpos separados)."""
    parts = make_parts(params)
    if len(parts) == 1:
        return next(iter(parts.values()))
    model = concatenate(list(parts.values()))
    model.metadata = {"name": NAME, "unit": "mm"}
    return model


BUILD = {"make": make_model, "build": make_model}
__all__ = ["NAME", "SLUGS", "DEFAULTS", "TYPES", "make_parts", "make_model", "BUILD"]
