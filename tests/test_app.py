import struct

import pytest
from fastapi.testclient import TestClient

from duct_service.app import app

SMALL = {"length": 40, "fin_count": 3, "fin_width": 3, "hole_count": 1}


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert "cable_duct" in body["loaded_models"]


def test_model_schema(client):
    r = client.get("/models/cable-duct")
    assert r.status_code == 200
    body = r.json()
    assert body["slug"] == "cable_duct"
    assert body["defaults"]["mf_angle"] == 45.0
    assert body["types"]["part"] == "enum[duct,cover,both]"


def test_model_schema_unknown(client):
    assert client.get("/models/vesa-adapter").status_code == 404


def test_generate_stl(client):
    r = client.post("/generate", json={"slug": "cable-duct", "params": SMALL})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("model/stl")
    assert 'filename="cable-duct-duct-cover.stl"' in r.headers["content-disposition"]
    # STL binario: cabecera de 80 bytes + nº de triángulos
    (n_tri,) = struct.unpack("<I", r.content[80:84])
    assert n_tri > 0
    assert len(r.content) == 84 + 50 * n_tri


def test_generate_single_part(client):
    r = client.post("/generate", json={"params": {**SMALL, "part": "cover"}})
    assert r.status_code == 200
    assert 'filename="cable-duct-cover.stl"' in r.headers["content-disposition"]


def test_generate_glb_preview(client):
    r = client.post("/generate?fmt=glb", json={"slug": "canaleta", "params": SMALL})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("model/gltf-binary")
    assert r.content[:4] == b"glTF"


def test_generate_rejects_bad_geometry(client):
    r = client.post("/generate", json={"slug": "cable_duct", "params": {**SMALL, "mf_angle": 100}})
    assert r.status_code == 400
    assert "angle out of range" in r.json()["detail"]


def test_generate_unknown_model(client):
    r = client.post("/generate", json={"slug": "router_mount", "params": {}})
    assert r.status_code == 404


def test_generate_unknown_format(client):
    r = client.post("/generate?fmt=obj", json={"params": SMALL})
    assert r.status_code == 400


def test_generate_accepts_legacy_model_field(client):
    r = client.post("/generate", json={"model": "canaleta", "params": {**SMALL, "part": "duct"}})
    assert r.status_code == 200
    assert 'filename="cable-duct-duct.stl"' in r.headers["content-disposition"]


def test_generate_rejects_non_finite_numbers(client):
    r = client.post("/generate", json={"params": {**SMALL, "width": "1e400"}})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("Model build error: width must be a finite number")
