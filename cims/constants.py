from __future__ import annotations

SIZES = ("5ml", "10ml", "100ml")

# 5ml & 10ml: 5 vials per pack | 100ml: 1 vial per pack
VIALS_PER_PACK = {"5ml": 5, "10ml": 5, "100ml": 1}

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"
SYSTEM_INITIALS = "SYS"

SAMPLE_REASONS = (
    "Retention Sample",
    "Quality Testing",
    "Customer Sample",
    "Marketing Sample",
    "Regulatory Sample",
    "Other",
)

PIPELINE_STATUSES = ("Ordered", "In Transit", "Delayed", "Received")

CONVERTED_FROM_HOLD = "stockHold"
REVERTED_FROM_SALE = "sale"

COUNTRIES = (
    "Afghanistan", "Albania", "Algeria", "Argentina", "Australia", "Austria",
    "Bangladesh", "Belgium", "Brazil", "Canada", "Chile", "China", "Colombia",
    "Czech Republic", "Denmark", "Egypt", "Finland", "France", "Germany", "Ghana",
    "Greece", "Hungary", "India", "Indonesia", "Iran", "Iraq", "Ireland", "Israel",
    "Italy", "Japan", "Kenya", "Malaysia", "Mexico", "Morocco", "Netherlands",
    "New Zealand", "Nigeria", "Norway", "Pakistan", "Peru", "Philippines", "Poland",
    "Portugal", "Romania", "Russia", "Saudi Arabia", "Singapore", "South Africa",
    "South Korea", "Spain", "Sweden", "Switzerland", "Thailand", "Turkey", "Ukraine",
    "United Arab Emirates", "United Kingdom", "United States", "Vietnam",
)

# Collection name -> default listing order (column, descending)
COLLECTIONS = {
    "users": ("username", False),
    "customers": ("name", False),
    "suppliers": ("name", False),
    "purchases": ("created_at", True),
    "sales": ("created_at", True),
    "stock_holds": ("created_at", True),
    "stock_adjustments": ("created_at", True),
    "pipeline_purchases": ("expected_date", False),
}
