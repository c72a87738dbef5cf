from __future__ import annotations

import random
from datetime import date, timedelta

from cims.constants import COLLECTIONS, SAMPLE_REASONS, SIZES
from cims.services.adjustments import add_sample
from cims.services.holds import add_hold, convert_hold_to_sale
from cims.services.parties import add_customer, add_supplier
from cims.services.pipeline import add_pipeline_order
from cims.services.purchases import add_purchase
from cims.services.sales import add_sale, available_batches
from cims.services.units import vials_per_pack
from cims.services.users import ensure_default_admin
from cims.store import load_all

DEMO_SUPPLIERS = [
    ("Alpine Pharma GmbH", "Germany"),
    ("Iberia Labs", "Spain"),
]
DEMO_CUSTOMERS = [
    ("Nordic Clinics", "Sweden", "orders@nordic.example"),
    ("Lagos Health", "Nigeria", "buyer@lagoshealth.example"),
    ("Andes Medical", "Peru", "compras@andes.example"),
]


def upsert_reference_data(store) -> None:
    ensure_default_admin(store)


def wipe_all(store) -> None:
    # Users survive a wipe so nobody is locked out.
    store.replace_many({name: [] for name in COLLECTIONS if name != "users"})


def load_demo_data(store, user=None, *, seed: int = 7) -> None:
    rng = random.Random(seed)
    upsert_reference_data(store)

    for name, country in DEMO_SUPPLIERS:
        add_supplier(store, user, name=name, country=country, email=f"sales@{name.split()[0].lower()}.example")
    for name, country, email in DEMO_CUSTOMERS:
        add_customer(store, user, name=name, country=country, email=email)

    today = date.today()
    for i, size in enumerate(SIZES):
        for n in range(2):
            supplier = DEMO_SUPPLIERS[(i + n) % len(DEMO_SUPPLIERS)][0]
            add_purchase(
                store,
                user,
                supplier=supplier,
                size=size,
                batch_number=f"B{today.year}-{size.upper()}-{n + 1:02d}",
                expiry_date=(today + timedelta(days=365 + 90 * n)).isoformat(),
                vials=vials_per_pack(size) * rng.randint(80, 160),
                cost_per_vial=round(rng.uniform(6.0, 14.0) * (4 if size == "100ml" else 1), 2),
                purchase_date=(today - timedelta(days=120 - 30 * n)).isoformat(),
            )

    for i, size in enumerate(SIZES):
        vpp = vials_per_pack(size)
        collections = load_all(store)
        batches = available_batches(collections, size)
        for k, (name, country, _email) in enumerate(DEMO_CUSTOMERS):
            b = batches[k % len(batches)]
            add_sale(
                store,
                collections,
                user,
                customer=name,
                country=country,
                end_destination=country,
                size=size,
                batch_number=b.batch,
                vials=vpp * rng.randint(5, 20),
                price_per_vial=round(b.cost_per_pack / vpp * rng.uniform(1.4, 2.2), 2),
                sale_date=(today - timedelta(days=rng.randint(1, 90))).isoformat(),
            )
            collections = load_all(store)

        name, country, _email = DEMO_CUSTOMERS[i % len(DEMO_CUSTOMERS)]
        add_hold(
            store,
            user,
            customer=name,
            country=country,
            end_destination=country,
            size=size,
            vials=vpp * rng.randint(2, 6),
            notes="Awaiting payment",
        )
        add_sample(
            store,
            load_all(store),
            user,
            size=size,
            batch_number=batches[0].batch,
            vials=vpp,
            reason=SAMPLE_REASONS[i % len(SAMPLE_REASONS)],
            recipient="QA lab",
        )

    # One converted sale so the revert path has something to show
    collections = load_all(store)
    hold = collections.stock_holds[-1]
    batch = available_batches(collections, hold["size"])[0]
    convert_hold_to_sale(
        store,
        collections,
        user,
        hold["id"],
        batch_number=batch.batch,
        price_per_vial=round(batch.cost_per_pack / vials_per_pack(hold["size"]) * 1.8, 2),
    )

    for n, size in enumerate(SIZES):
        add_pipeline_order(
            store,
            user,
            po_number=f"PO-{today.year}-{n + 1:03d}",
            supplier=DEMO_SUPPLIERS[n % len(DEMO_SUPPLIERS)][0],
            size=size,
            vials=vials_per_pack(size) * 100,
            price_per_vial=round(rng.uniform(6.0, 12.0), 2),
            expected_date=(today + timedelta(days=14 * (n + 1))).isoformat(),
            status=("Ordered", "In Transit", "Delayed")[n],
        )
