from datetime import date

import pytest

from cims.services.adjustments import add_sample, delete_sample
from cims.services.holds import add_hold, convert_hold_to_sale, delete_hold, revert_sale_to_hold
from cims.services.metrics import calc_metrics
from cims.services.purchases import add_purchase, delete_purchase, is_expired
from cims.services.sales import add_sale, available_batches, batch_cost, delete_sale
from cims.store import load_all


def _purchase(store, user, *, size="5ml", batch="B1", vials=100, cost_per_vial=2.0):
    return add_purchase(
        store,
        user,
        supplier="Alpine Pharma",
        size=size,
        batch_number=batch,
        expiry_date="2030-01-31",
        vials=vials,
        cost_per_vial=cost_per_vial,
        purchase_date="2026-03-01",
    )


def _sale(store, user, *, size="5ml", batch="B1", vials=10, price_per_vial=5.0):
    return add_sale(
        store,
        load_all(store),
        user,
        customer="Nordic Clinics",
        customer_id=7,
        country="Sweden",
        end_destination="Norway",
        size=size,
        batch_number=batch,
        vials=vials,
        price_per_vial=price_per_vial,
        sale_date="2026-04-01",
    )


def test_purchase_is_stored_in_packs_with_audit_fields(store, clerk):
    p = _purchase(store, clerk, vials=100, cost_per_vial=2.0)
    assert p["units"] == pytest.approx(20)
    assert p["cost"] == pytest.approx(10)
    assert p["created_by"] == "JAN"
    assert p["created_at"]


def test_purchase_requires_fields(store, clerk):
    with pytest.raises(ValueError):
        add_purchase(store, clerk, supplier="", size="5ml", batch_number="B1", expiry_date="2030-01-01", vials=5, cost_per_vial=1)
    with pytest.raises(ValueError):
        add_purchase(store, clerk, supplier="S", size="5ml", batch_number="B1", expiry_date="2030-01-01", vials=0, cost_per_vial=1)
    with pytest.raises(ValueError):
        add_purchase(store, clerk, supplier="S", size="20ml", batch_number="B1", expiry_date="2030-01-01", vials=5, cost_per_vial=1)


def test_is_expired():
    assert is_expired({"expiry_date": "2020-01-01"}, today=date(2026, 1, 1))
    assert not is_expired({"expiry_date": "2030-01-01"}, today=date(2026, 1, 1))
    assert not is_expired({}, today=date(2026, 1, 1))


def test_sale_converts_vials_and_price(store, clerk):
    _purchase(store, clerk)
    s = _sale(store, clerk, vials=10, price_per_vial=5.0)
    assert s["units"] == pytest.approx(2)
    assert s["price"] == pytest.approx(25)
    assert s["end_destination"] == "Norway"
    assert s.get("converted_from") is None


def test_sale_requires_end_destination(store, clerk):
    _purchase(store, clerk)
    with pytest.raises(ValueError, match="End Destination"):
        add_sale(
            store, load_all(store), clerk,
            customer="C", country="Spain", end_destination="", size="5ml",
            batch_number="B1", vials=5, price_per_vial=1,
        )


def test_sale_may_exceed_batch_stock(store, clerk):
    _purchase(store, clerk, vials=10)
    s = _sale(store, clerk, vials=15)
    assert s["units"] == pytest.approx(3)

    data = load_all(store)
    assert calc_metrics(data)["5ml"].stock == pytest.approx(-1)
    [b] = available_batches(data, "5ml", include_empty=True)
    assert b.available_vials == pytest.approx(-5)
    assert available_batches(data, "5ml") == []

    with pytest.raises(ValueError, match="never purchased"):
        _sale(store, clerk, batch="UNKNOWN", vials=1)
    with pytest.raises(ValueError, match="never purchased"):
        _sale(store, clerk, size="10ml", batch="B1", vials=5)


def test_available_batches_subtracts_sales_and_samples(store, clerk):
    _purchase(store, clerk, batch="B1", vials=50)
    _purchase(store, clerk, batch="B2", vials=25)
    _purchase(store, clerk, size="100ml", batch="B1", vials=8)
    _sale(store, clerk, batch="B1", vials=20)
    add_sample(store, load_all(store), clerk, size="5ml", batch_number="B1", vials=5, reason="Quality Testing")
    _sale(store, clerk, batch="B2", vials=25)

    batches = available_batches(load_all(store), "5ml")
    assert [b.batch for b in batches] == ["B1"]
    assert batches[0].available_packs == pytest.approx(5)
    assert batches[0].available_vials == pytest.approx(25)
    assert batches[0].supplier == "Alpine Pharma"
    assert batches[0].cost_per_pack == pytest.approx(10)


def test_sample_snapshots_batch_cost(store, clerk):
    _purchase(store, clerk, vials=50, cost_per_vial=3.0)
    a = add_sample(store, load_all(store), clerk, size="5ml", batch_number="B1", vials=10, reason="Retention Sample", recipient="QA")
    assert a["units"] == pytest.approx(2)
    assert a["vials"] == 10
    assert a["cost_per_pack"] == pytest.approx(15)
    assert a["total_cost"] == pytest.approx(30)
    assert batch_cost(load_all(store), "B1", "5ml") == pytest.approx(15)
    assert batch_cost(load_all(store), "nope", "5ml") == 0


def test_sample_reason_must_be_known(store, clerk):
    _purchase(store, clerk)
    with pytest.raises(ValueError):
        add_sample(store, load_all(store), clerk, size="5ml", batch_number="B1", vials=5, reason="Lost")


def test_sample_may_empty_batch_below_zero(store, clerk):
    _purchase(store, clerk, vials=5)
    a = add_sample(store, load_all(store), clerk, size="5ml", batch_number="B1", vials=10, reason="Other")
    assert a["total_cost"] == pytest.approx(20)
    assert calc_metrics(load_all(store))["5ml"].stock == pytest.approx(-1)


def test_deletes_are_admin_only(store, admin, clerk):
    p = _purchase(store, clerk)
    s = _sale(store, clerk)
    with pytest.raises(PermissionError):
        delete_sale(store, clerk, s["id"])
    with pytest.raises(PermissionError):
        delete_purchase(store, clerk, p["id"])
    delete_sale(store, admin, s["id"])
    delete_purchase(store, admin, p["id"])
    data = load_all(store)
    assert data.sales == [] and data.purchases == []
    with pytest.raises(ValueError):
        delete_sale(store, admin, s["id"])


def _hold(store, user, *, vials=15):
    return add_hold(
        store,
        user,
        customer="Lagos Health",
        customer_id=3,
        country="Nigeria",
        end_destination="Ghana",
        size="5ml",
        vials=vials,
        notes="awaiting PO",
        hold_date="2026-05-01",
    )


def test_hold_requires_customer_and_destination(store, clerk):
    with pytest.raises(ValueError):
        add_hold(store, clerk, customer="", country=None, end_destination="Ghana", size="5ml", vials=5)
    h = _hold(store, clerk, vials=15)
    assert h["units"] == pytest.approx(3)
    assert h["vials"] == 15


def test_convert_hold_to_sale_moves_record_with_lineage(store, clerk):
    _purchase(store, clerk, vials=100)
    hold = _hold(store, clerk, vials=15)

    sale = convert_hold_to_sale(
        store, load_all(store), clerk, hold["id"],
        batch_number="B1", price_per_vial=4.0, sale_date="2026-05-10",
    )

    assert sale["converted_from"] == "stockHold"
    assert str(sale["original_hold_id"]) == str(hold["id"])
    assert sale["converted_by"] == "JAN"
    assert sale["customer"] == "Lagos Health"
    assert sale["end_destination"] == "Ghana"
    assert sale["units"] == pytest.approx(3)
    assert sale["price"] == pytest.approx(20)

    data = load_all(store)
    assert data.stock_holds == []
    assert len(data.sales) == 1


def test_convert_missing_hold(store, clerk):
    with pytest.raises(ValueError, match="Stock hold not found"):
        convert_hold_to_sale(store, load_all(store), clerk, 12345, batch_number="B1", price_per_vial=1)


def test_convert_hold_larger_than_one_batch(store, clerk):
    _purchase(store, clerk, batch="B1", vials=20)
    _purchase(store, clerk, batch="B2", vials=20)
    hold = _hold(store, clerk, vials=30)

    sale = convert_hold_to_sale(store, load_all(store), clerk, hold["id"], batch_number="B1", price_per_vial=1)
    assert sale["units"] == pytest.approx(6)

    data = load_all(store)
    assert data.stock_holds == []
    assert calc_metrics(data)["5ml"].stock == pytest.approx(2)
    by_batch = {b.batch: b.available_packs for b in available_batches(data, "5ml", include_empty=True)}
    assert by_batch == {"B1": pytest.approx(-2), "B2": pytest.approx(4)}


def test_convert_requires_purchased_batch(store, clerk):
    hold = _hold(store, clerk, vials=15)
    with pytest.raises(ValueError, match="never purchased"):
        convert_hold_to_sale(store, load_all(store), clerk, hold["id"], batch_number="B1", price_per_vial=1)
    assert len(load_all(store).stock_holds) == 1


def test_revert_sale_to_hold(store, admin, clerk):
    _purchase(store, clerk, vials=100)
    hold = _hold(store, clerk, vials=15)
    sale = convert_hold_to_sale(store, load_all(store), clerk, hold["id"], batch_number="B1", price_per_vial=4.0)

    with pytest.raises(PermissionError):
        revert_sale_to_hold(store, load_all(store), clerk, sale["id"])

    new_hold = revert_sale_to_hold(store, load_all(store), admin, sale["id"], today=date(2026, 6, 2))
    assert new_hold["reverted_from"] == "sale"
    assert str(new_hold["original_sale_id"]) == str(sale["id"])
    assert new_hold["reverted_by"] == "ADM"
    assert new_hold["vials"] == 15
    assert new_hold["units"] == pytest.approx(3)
    assert new_hold["hold_date"] == "2026-06-02"
    assert new_hold["notes"] == "Reverted from sale on 2026-06-02"
    assert new_hold["customer"] == "Lagos Health"

    data = load_all(store)
    assert data.sales == []
    assert len(data.stock_holds) == 1


def test_only_converted_sales_can_be_reverted(store, admin, clerk):
    _purchase(store, clerk)
    s = _sale(store, clerk)
    with pytest.raises(ValueError, match="not converted"):
        revert_sale_to_hold(store, load_all(store), admin, s["id"])
    with pytest.raises(ValueError, match="Sale not found"):
        revert_sale_to_hold(store, load_all(store), admin, 999999)


def test_failed_delete_leaves_created_record(store, clerk, monkeypatch):
    _purchase(store, clerk, vials=100)
    hold = _hold(store, clerk)

    def broken_delete(collection, record_id):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(store, "delete", broken_delete)
    with pytest.raises(RuntimeError):
        convert_hold_to_sale(store, load_all(store), clerk, hold["id"], batch_number="B1", price_per_vial=4.0)
    monkeypatch.undo()

    data = load_all(store)
    assert len(data.sales) == 1
    assert len(data.stock_holds) == 1


def test_delete_hold_and_sample_admin_only(store, admin, clerk):
    _purchase(store, clerk)
    h = _hold(store, clerk)
    a = add_sample(store, load_all(store), clerk, size="5ml", batch_number="B1", vials=5, reason="Other")
    with pytest.raises(PermissionError):
        delete_hold(store, clerk, h["id"])
    delete_hold(store, admin, h["id"])
    delete_sample(store, admin, a["id"])
    data = load_all(store)
    assert data.stock_holds == [] and data.stock_adjustments == []
