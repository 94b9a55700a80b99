"""Hard failures raised by core components.

Soft failures never surface as exceptions; see
:func:`opsconsole.core.fallback.fetch_or_default`.
"""

from __future__ import annotations


class UnitNotFoundError(LookupError):
    def __init__(self, ref: str) -> None:
        super().__init__(f"No business unit matches {ref!r}")
        self.ref = ref


class AccountNotFoundError(LookupError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"No account with id {account_id!r}")
        self.account_id = account_id


class PropertyNotFoundError(LookupError):
    def __init__(self, property_id: str) -> None:
        super().__init__(f"No property with id {property_id!r}")
        self.property_id = property_id
