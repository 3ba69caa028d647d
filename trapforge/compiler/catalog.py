"""
Pre-built contract catalog selection.

The toolchain project ships a catalog of reviewed trap contracts. A request
is mapped onto one of them by an ordered keyword table; the last row is the
generic default unit.
"""

from typing import Iterable, List, Optional, Tuple

from ..data.models.deployment import CompiledUnit

DEFAULT_UNIT = "SecurityTrap"

CATALOG_TABLE: List[Tuple[Tuple[str, ...], str]] = [
    (("honeypot", "fund capture", "capture funds", "capture"), "AdvancedHoneypot"),
    (("flash loan", "flashloan", "attack prevention"), "FlashLoanDefender"),
    (("mev", "sandwich"), "MEVProtectionSuite"),
    (("reentrancy", "re-entrancy", "state protection"), "ReentrancyShield"),
    (("multi-sig", "multisig", "vault"), "MultiSigVault"),
    (("registry",), "DroseraRegistry"),
]


def select_unit(description: str) -> str:
    """Map a request description onto a catalog unit name."""
    text = description.lower()
    for keywords, unit_name in CATALOG_TABLE:
        if any(keyword in text for keyword in keywords):
            return unit_name
    return DEFAULT_UNIT


def resolve_unit(selected: str, units: Iterable[CompiledUnit]) -> Optional[CompiledUnit]:
    """Return the selected unit, else the default unit, else None.

    None means the catalog is unavailable and the caller has to build the
    generated artifact itself.
    """
    by_name = {unit.name: unit for unit in units}
    return by_name.get(selected) or by_name.get(DEFAULT_UNIT)
