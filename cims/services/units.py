from __future__ import annotations

from cims.constants import VIALS_PER_PACK


def vials_per_pack(size: str) -> int:
    try:
        return VIALS_PER_PACK[size]
    except KeyError:
        raise ValueError(f"Unknown size '{size}'. Use one of: {', '.join(VIALS_PER_PACK)}.")


def vials_to_packs(vials: float, size: str) -> float:
    return float(vials) / vials_per_pack(size)


def packs_to_vials(packs: float, size: str) -> float:
    return float(packs) * vials_per_pack(size)


def per_vial_to_per_pack(amount: float, size: str) -> float:
    """Forms capture price/cost per vial; records keep it per pack."""
    return float(amount) * vials_per_pack(size)


def per_pack_to_per_vial(amount: float, size: str) -> float:
    return float(amount) / vials_per_pack(size)
