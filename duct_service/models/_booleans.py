# duct_service/models/_booleans.py
from __future__ import annotations

import os
from typing import Iterable, List

import trimesh
from trimesh.boolean import difference as _difference, union as _union

# manifold3d es el motor de booleanos (pip: manifold3d); sin fallback a concat
ENGINE = os.getenv("FORGE_BOOLEAN_ENGINE", "manifold")


class GeometryBuildError(RuntimeError):
    """El motor de booleanos no produjo un sólido válido."""


def _valid(mesh: trimesh.Trimesh) -> bool:
    return isinstance(mesh, trimesh.Trimesh) and mesh.vertices.shape[0] > 0


def _prep(meshes: Iterable[trimesh.Trimesh]) -> List[trimesh.Trimesh]:
    return [m for m in meshes if _valid(m)]


def _check(res, op: str) -> trimesh.Trimesh:
    if isinstance(res, trimesh.Scene):
        res = res.dump(concatenate=True)
    if not _valid(res):
        raise GeometryBuildError(f"{op} produced an empty mesh")
    return res


def union(meshes: Iterable[trimesh.Trimesh]) -> trimesh.Trimesh:
    ms = _prep(meshes)
    if not ms:
        raise GeometryBuildError("union of nothing")
    if len(ms) == 1:
        return ms[0].copy()
    try:
        res = _union(ms, engine=ENGINE)
    except ValueError as e:
        raise GeometryBuildError(f"union failed: {e}") from e
    return _check(res, "union")


def difference(a: trimesh.Trimesh, cutters: Iterable[trimesh.Trimesh]) -> trimesh.Trimesh:
    """`a` menos todos los cortadores (en una sola pasada del motor)."""
    if not _valid(a):
        raise GeometryBuildError("difference on an empty mesh")
    cs = _prep(cutters)
    if not cs:
        return a.copy()
    try:
        res = _difference([a] + cs, engine=ENGINE)
    except ValueError as e:
        raise GeometryBuildError(f"difference failed: {e}") from e
    return _check(res, "difference")
