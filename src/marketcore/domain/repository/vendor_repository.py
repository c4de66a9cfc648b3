"""Abstract repositories for Vendor and VendorPayout."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.vendor import Vendor, VendorPayout


class VendorRepository(ABC):

    @abstractmethod
    def get_by_id(self, vendor_id: int) -> Vendor | None:
        """Return a vendor, or None."""

    @abstractmethod
    def get_for_update(self, vendor_id: int) -> Vendor | None:
        """Lock the vendor row; serializes payouts of one vendor."""

    @abstractmethod
    def get_by_user_id(self, user_id: int) -> Vendor | None:
        """Return the vendor owned by a user, or None."""

    @abstractmethod
    def save(self, vendor: Vendor) -> None:
        """Persist a new or updated vendor."""


class PayoutRepository(ABC):

    @abstractmethod
    def list_for_vendor(self, vendor_id: int) -> list[VendorPayout]:
        """Return every payout ever requested by a vendor."""

    @abstractmethod
    def add(self, payout: VendorPayout) -> None:
        """Insert a payout and assign its ``id``."""
