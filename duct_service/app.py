from __future__ import annotations

import io
import os
import sys
import traceback
from typing import Any, Dict, List, Optional

import trimesh
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from trimesh.visual import ColorVisuals

from duct_service.models import ALIASES, MODULES, REGISTRY, resolve_slug
from duct_service.models._booleans import GeometryBuildError
from duct_service.models.params import InvalidGeometryError

# -------------------------- Config & App --------------------------

def _split_origins(s: Optional[str]) -> List[str]:
    if not s:
        return []
    return [x.strip() for x in s.split(",") if x.strip()]


CORS_ALLOW = os.getenv("CORS_ALLOW_ORIGINS", "")
origins = _split_origins(CORS_ALLOW) or ["*"]

os.environ.setdefault("TRIMESH_NO_NETWORK", "1")

MEDIA_TYPES = {"stl": "model/stl", "glb": "model/gltf-binary"}
# colores de la vista previa GLB
PART_COLORS = {"duct": [210, 210, 210, 255], "cover": [0, 120, 255, 255]}

app = FastAPI(title="Cable Duct Forge - STL Service")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------- Schemas --------------------------

class GenerateBody(BaseModel):
    slug: Optional[str] = None    # snake o kebab
    params: Dict[str, Any] = Field(default_factory=dict)
    model: Optional[str] = None   # compat: nombre antiguo de `slug`


# -------------------------- Helpers --------------------------

def _slug_for_storage(s: str) -> str:
    return (s or "").strip().lower().replace("_", "-")


def _build_parts(slug: str, params: Dict[str, Any]) -> Dict[str, trimesh.Trimesh]:
    mod = MODULES[slug]
    make_parts = getattr(mod, "make_parts", None)
    if callable(make_parts):
        return make_parts(params)
    return {"model": REGISTRY[slug](params)}


def _as_glb_bytes(parts: Dict[str, trimesh.Trimesh]) -> bytes:
    scene = trimesh.Scene()
    for name, mesh in parts.items():
        m = mesh.copy()
        m.visual = ColorVisuals(m, face_colors=PART_COLORS.get(name, PART_COLORS["duct"]))
        scene.add_geometry(m, node_name=name)
    buf = io.BytesIO()
    scene.export(file_obj=buf, file_type="glb")
    return buf.getvalue()


def _as_stl_bytes(parts: Dict[str, trimesh.Trimesh]) -> bytes:
    meshes = list(parts.values())
    mesh = meshes[0] if len(meshes) == 1 else trimesh.util.concatenate(meshes)
    return mesh.export(file_type="stl")


# -------------------------- Endpoints --------------------------

@app.get("/health")
def health():
    return {
        "ok": True,
        "service": "duct-forge-stl",
        "origins": origins,
        "loaded_models": sorted(REGISTRY.keys()),
        "aliases_count": len(ALIASES),
    }


@app.get("/models/{slug}")
def model_schema(slug: str):
    key = resolve_slug(slug)
    if key is None:
        raise HTTPException(status_code=404, detail=f"Model '{slug}' not found")
    mod = MODULES[key]
    return {
        "slug": key,
        "defaults": getattr(mod, "DEFAULTS", {}),
        "types": getattr(mod, "TYPES", {}),
    }


@app.post("/generate")
def generate(body: GenerateBody, request: Request):
    raw_slug = (body.slug or body.model or "cable_duct").strip()
    slug = resolve_slug(raw_slug)
    if slug is None:
        raise HTTPException(status_code=404, detail=f"Model '{raw_slug}' not found")

    fmt = (request.query_params.get("fmt") or "stl").strip().lower()
    if fmt not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported format '{fmt}' (stl|glb)")

    try:
        parts = _build_parts(slug, dict(body.params or {}))
    except InvalidGeometryError as e:
        raise HTTPException(status_code=400, detail=f"Model build error: {e}")
    except GeometryBuildError as e:
        print(f"[FORGE][{slug}] geometry kernel error:", e, file=sys.stderr)
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=f"Geometry error: {e}")

    data = _as_glb_bytes(parts) if fmt == "glb" else _as_stl_bytes(parts)
    filename = f"{_slug_for_storage(slug)}-{'-'.join(parts)}.{fmt}"
    return Response(
        content=data,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
