"""Abstract repository for customer accounts and stored addresses."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.account import Account, Address


class AccountRepository(ABC):

    @abstractmethod
    def get_by_id(self, user_id: int) -> Account | None:
        """Return an account, or None."""

    @abstractmethod
    def get_address(self, address_id: int) -> Address | None:
        """Return a stored address, or None."""

    @abstractmethod
    def save(self, account: Account) -> None:
        """Persist a new or updated account."""

    @abstractmethod
    def save_address(self, address: Address) -> None:
        """Persist a new or updated address."""
