# duct_service/models/profiles.py
"""
Secciones 2D (shapely) de la canaleta y de la tapa.

Plano de la sección: X = ancho (centrado en 0), Y = alto (suelo en Y=0).
La extrusión posterior va a lo largo de Z.
"""
from __future__ import annotations

from typing import Iterable

import shapely.geometry as sg
from shapely import affinity
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from ._booleans import GeometryBuildError
from .params import DuctParams, check_clip

# holgura para que los cortes atraviesen el contorno exterior
_OVER = 1.0


# ---------------------- helpers ----------------------

def clip_tab(length: float, depth: float, angle: float) -> sg.Polygon:
    """
    Trapecio del clip: base sobre X=0 (de Y=0 a Y=length), saliente `depth`
    hacia +X con flancos a `angle` grados.
    """
    run = check_clip(length, depth, angle)
    return sg.Polygon([(0.0, 0.0), (depth, run), (depth, length - run), (0.0, length)])


def reflect(shape: BaseGeometry, axis: str = "y") -> BaseGeometry:
    """Reflejo exacto respecto al eje dado: "y" -> (x, y) => (-x, y); "x" -> (x, -y)."""
    axis = (axis or "y").lower()
    if axis == "y":
        return affinity.scale(shape, xfact=-1.0, yfact=1.0, origin=(0.0, 0.0))
    if axis == "x":
        return affinity.scale(shape, xfact=1.0, yfact=-1.0, origin=(0.0, 0.0))
    raise ValueError(f"unknown mirror axis {axis!r}")


def mirrored(shape: BaseGeometry, axis: str = "y") -> BaseGeometry:
    """La forma unida a su reflejo (simetría izquierda/derecha)."""
    return unary_union([shape, reflect(shape, axis)])


def _single(geom: BaseGeometry, what: str) -> sg.Polygon:
    if isinstance(geom, sg.Polygon) and geom.is_valid and not geom.is_empty:
        return orient(geom)
    raise GeometryBuildError(f"{what} profile is not a single valid polygon ({geom.geom_type})")


def _cut(base: BaseGeometry, holes: Iterable[BaseGeometry]) -> BaseGeometry:
    out = base
    for h in holes:
        out = out.difference(h)
    return out


# ---------------------- canaleta ----------------------

def duct_groove(p: DuctParams) -> sg.Polygon:
    """Ranura del clip en la pared derecha (el trapecio apunta hacia dentro)."""
    tab = reflect(clip_tab(p.mf_length, p.mf_depth, p.mf_angle))
    return affinity.translate(tab, xoff=p.duct_tab_offset, yoff=p.clip_bottom)


def duct_rebate(p: DuctParams) -> sg.Polygon:
    """Rebaje exterior derecho para la tapa enrasada (vacío si no aplica)."""
    if p.tab_inset <= 0:
        return sg.Polygon()
    return sg.box(p.duct_tab_offset, p.thin_zone_bottom, p.width / 2.0 + _OVER, p.height + _OVER)


def duct_interior_half(p: DuctParams) -> sg.Polygon:
    """
    Hexágono del vaciado interior (mitad derecha): deja `shell` de suelo y de
    pared, con un escalón a 45° que mantiene el espesor detrás del clip.
    """
    return sg.Polygon([
        (0.0, p.shell),
        (p.interior_x, p.shell),
        (p.interior_x, p.step_start),
        (p.interior_step_x, p.thin_zone_bottom),
        (p.interior_step_x, p.height + _OVER),
        (0.0, p.height + _OVER),
    ])


def duct_profile(p: DuctParams) -> sg.Polygon:
    """Sección en U de la canaleta: paredes de espesor `shell` con ranuras de clip."""
    outer = sg.box(-p.width / 2.0, 0.0, p.width / 2.0, p.height)
    cuts = [mirrored(duct_groove(p)), mirrored(duct_interior_half(p))]
    rebate = duct_rebate(p)
    if not rebate.is_empty:
        cuts.append(mirrored(rebate))
    return _single(_cut(outer, cuts), "duct")


# ---------------------- tapa ----------------------

def cover_half(p: DuctParams) -> BaseGeometry:
    ci, co = p.cover_tab_offset, p.cover_outer
    roof = sg.box(0.0, p.height, co, p.cover_top)
    wall = sg.box(ci, p.skirt_bottom, co, p.cover_top)
    tab = affinity.translate(
        reflect(clip_tab(p.mf_length, p.mf_depth, p.mf_angle)), xoff=ci, yoff=p.clip_bottom
    )
    return unary_union([roof, wall, tab])


def cover_profile(p: DuctParams) -> sg.Polygon:
    """Tapa: U invertida que abraza la canaleta, con los clips hacia dentro."""
    return _single(mirrored(cover_half(p)), "cover")


def rib_profile(p: DuctParams) -> sg.Polygon:
    """Tope de extremo: tapa el hueco interior de la tapa hasta el faldón."""
    ci = p.cover_tab_offset
    return sg.box(-ci, p.skirt_bottom, ci, p.height + p.shell * 0.5)


__all__ = [
    "clip_tab",
    "reflect",
    "mirrored",
    "duct_groove",
    "duct_rebate",
    "duct_interior_half",
    "duct_profile",
    "cover_half",
    "cover_profile",
    "rib_profile",
]
