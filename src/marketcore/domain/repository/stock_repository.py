"""Abstract repositories for StockRecord and Reservation."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.stock import Reservation, StockRecord


class StockRepository(ABC):

    @abstractmethod
    def get(self, sku: str) -> StockRecord | None:
        """Return the stock record for a sku, or None."""

    @abstractmethod
    def get_many_for_update(self, skus: list[str]) -> dict[str, StockRecord]:
        """Lock and return the records for ``skus``, in sorted sku order.

        Missing skus are simply absent from the result.
        """

    @abstractmethod
    def list_all(self) -> list[StockRecord]:
        """Return every stock record."""

    @abstractmethod
    def save(self, record: StockRecord) -> None:
        """Persist a new or updated stock record."""


class ReservationRepository(ABC):

    @abstractmethod
    def get_for_update(self, token: str) -> Reservation | None:
        """Lock and return a reservation by token, or None."""

    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        """Insert a new reservation with its lines."""

    @abstractmethod
    def save(self, reservation: Reservation) -> None:
        """Persist state, order link and settlement time."""
