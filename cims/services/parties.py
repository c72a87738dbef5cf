from __future__ import annotations

from typing import Any, Optional

from cims.services.records import delete_record, insert_record, require_text
from cims.services.users import require_admin
from cims.utils import clean_text


def add_customer(
    store,
    user,
    *,
    name: str,
    country: str,
    email: str,
    contact_person: Optional[str] = None,
    phone: Optional[str] = None,
) -> dict:
    msg = "Name, country and email required."
    record = {
        "name": require_text(name, msg),
        "country": require_text(country, msg),
        "contact_person": clean_text(contact_person),
        "email": require_text(email, msg),
        "phone": clean_text(phone),
    }
    return insert_record(store, "customers", record, user)


def add_supplier(
    store,
    user,
    *,
    name: str,
    country: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> dict:
    msg = "Name and country required."
    record = {
        "name": require_text(name, msg),
        "country": require_text(country, msg),
        "email": clean_text(email),
        "phone": clean_text(phone),
    }
    return insert_record(store, "suppliers", record, user)


def delete_customer(store, user, customer_id: Any) -> None:
    require_admin(user)
    delete_record(store, "customers", customer_id)


def delete_supplier(store, user, supplier_id: Any) -> None:
    require_admin(user)
    delete_record(store, "suppliers", supplier_id)
