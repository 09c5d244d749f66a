import math

import numpy as np
import pytest
import shapely.geometry as sg

from duct_service.models import get_builder, resolve_slug
from duct_service.models.cable_duct import make_cover, make_duct, make_model, make_parts
from duct_service.models.params import InvalidGeometryError, resolve
from duct_service.models.profiles import cover_profile, duct_profile, rib_profile

# canaleta corta para que los booleanos sean rápidos
SMALL = {"length": 60, "fin_count": 4, "fin_width": 3, "hole_count": 0}


def _expected_duct_volume(p):
    area = duct_profile(p).area
    above_floor = area - p.width * p.shell
    return area * p.length - p.fin_count * p.slit_width * above_floor


def test_duct_volume_matches_profile_minus_slots():
    p = resolve(SMALL)
    duct = make_duct(p)
    assert duct.is_watertight
    assert duct.volume == pytest.approx(_expected_duct_volume(p), rel=1e-6)


def test_slots_and_fins_sit_where_the_spacing_puts_them():
    p = resolve(SMALL)
    duct = make_duct(p)
    x_wall = (p.interior_x + p.width / 2) / 2
    y = (p.shell + p.step_start) / 2

    fins = [p.fin_width / 2 + i * p.fin_spacing for i in range(p.fin_count + 1)]
    slots = [p.fin_width + i * p.fin_spacing + p.slit_width / 2 for i in range(p.fin_count)]
    for x in (-x_wall, x_wall):
        assert duct.contains([[x, y, z] for z in fins]).all()
        assert not duct.contains([[x, y, z] for z in slots]).any()
    # el suelo sigue entero bajo las ranuras
    assert duct.contains([[x_wall, p.shell / 2, z] for z in slots]).all()


def test_holes_are_drilled_at_their_positions():
    p = resolve({**SMALL, "hole_count": 3, "hole_offset": 10})
    duct = make_duct(p)
    r = p.hole_diameter / 2
    beside = (r + p.width / 2) / 2
    assert p.hole_positions == pytest.approx((10, 30, 50))
    assert not duct.contains([[0.0, p.shell / 2, z] for z in p.hole_positions]).any()
    assert duct.contains([[beside, p.shell / 2, z] for z in p.hole_positions]).all()
    # interior hueco sobre el suelo
    assert not duct.contains([[0.0, p.shell + 1.0, z] for z in p.hole_positions]).any()


def test_mounting_holes_go_through_the_floor():
    with_holes = resolve({**SMALL, "hole_count": 3, "hole_offset": 10})
    plain = make_duct(resolve(SMALL))
    drilled = make_duct(with_holes)
    r = with_holes.hole_diameter / 2
    removed = 3 * math.pi * r * r * with_holes.shell
    assert plain.volume - drilled.volume == pytest.approx(removed, rel=0.02)


def test_flush_length_recesses_duct_ends():
    base = resolve({**SMALL, "cover_edge": "both"})
    flush = resolve({**SMALL, "cover_edge": "both", "cover_flush_length": True})
    y0 = flush.skirt_bottom - flush.tolerance
    band = duct_profile(flush).intersection(sg.box(-flush.width, y0, flush.width, flush.height + 1)).area
    recess = 2 * (flush.shell + flush.tolerance) * band
    assert make_duct(base).volume - make_duct(flush).volume == pytest.approx(recess, rel=1e-6)


def test_cover_volume_without_edges():
    p = resolve(SMALL)
    cover = make_cover(p)
    assert cover.is_watertight
    assert cover.volume == pytest.approx(cover_profile(p).area * p.length, rel=1e-6)


@pytest.mark.parametrize("edge,count", [("one", 1), ("both", 2)])
def test_cover_edge_ribs(edge, count):
    p = resolve({**SMALL, "cover_edge": edge})
    extra = rib_profile(p).difference(cover_profile(p)).area * p.shell * count
    expected = cover_profile(p).area * p.cover_length + extra
    cover = make_cover(p)
    assert cover.volume == pytest.approx(expected, rel=1e-6)
    assert cover.bounds[0][2] == pytest.approx(p.cover_start)
    assert cover.bounds[1][2] == pytest.approx(p.cover_end)


def test_engraved_text_removes_material():
    plain = make_cover(resolve(SMALL))
    engraved = make_cover(resolve({**SMALL, "text": "CABLES"}))
    assert engraved.volume < plain.volume
    assert np.allclose(engraved.bounds, plain.bounds)


def test_parts_are_oriented_for_printing():
    p = resolve(SMALL)
    parts = make_parts(SMALL)
    assert set(parts) == {"duct", "cover"}
    duct, cover = parts["duct"], parts["cover"]

    assert duct.bounds == pytest.approx(np.array([[0, -p.width / 2, 0], [p.length, p.width / 2, p.height]]))
    assert cover.bounds[0][2] == pytest.approx(0.0)
    assert cover.bounds[1][2] == pytest.approx(p.cover_top - p.skirt_bottom)
    # separadas en Y, sin solape
    assert cover.bounds[0][1] == pytest.approx(p.width / 2 + p.part_gap)
    assert cover.bounds[0][1] > duct.bounds[1][1]


@pytest.mark.parametrize("part,keys", [("duct", {"duct"}), ("cover", {"cover"}), ("both", {"duct", "cover"})])
def test_part_selector(part, keys):
    parts = make_parts({**SMALL, "part": part})
    assert set(parts) == keys
    for name, mesh in parts.items():
        assert mesh.metadata["name"] == f"cable_duct_{name}"


def test_single_cover_is_centered():
    p = resolve({**SMALL, "part": "cover"})
    cover = make_parts({**SMALL, "part": "cover"})["cover"]
    assert cover.bounds[0][1] == pytest.approx(-p.cover_outer)
    assert cover.bounds[1][1] == pytest.approx(p.cover_outer)


def test_make_model_concatenates_separate_bodies():
    parts = make_parts(SMALL)
    model = make_model(SMALL)
    assert len(model.vertices) == sum(len(m.vertices) for m in parts.values())
    assert model.volume == pytest.approx(sum(m.volume for m in parts.values()), rel=1e-6)


def test_invalid_parameters_abort_before_building():
    with pytest.raises(InvalidGeometryError, match="angle"):
        make_model({**SMALL, "mf_angle": 100})


def test_registry_exposes_builder():
    assert resolve_slug("cable-duct") == "cable_duct"
    assert resolve_slug("canaleta") == "cable_duct"
    assert get_builder("Cable_Duct") is make_model
    assert resolve_slug("nope") is None
