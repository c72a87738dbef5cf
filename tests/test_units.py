from math import isclose

import pytest

from cims.services.units import (
    packs_to_vials,
    per_pack_to_per_vial,
    per_vial_to_per_pack,
    vials_per_pack,
    vials_to_packs,
)


def test_vials_per_pack_by_size():
    assert vials_per_pack("5ml") == 5
    assert vials_per_pack("10ml") == 5
    assert vials_per_pack("100ml") == 1


def test_unknown_size_rejected():
    with pytest.raises(ValueError):
        vials_per_pack("50ml")


def test_vial_pack_conversion():
    assert isclose(vials_to_packs(12, "5ml"), 2.4)
    assert packs_to_vials(2.4, "10ml") == pytest.approx(12)
    assert vials_to_packs(7, "100ml") == 7


def test_price_conversion():
    # 3 EUR per vial on a 5-vial pack is 15 EUR per pack
    assert per_vial_to_per_pack(3, "5ml") == 15
    assert per_pack_to_per_vial(15, "5ml") == 3
    assert per_vial_to_per_pack(40, "100ml") == 40
