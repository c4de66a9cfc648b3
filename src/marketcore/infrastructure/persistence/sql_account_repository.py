"""SQLAlchemy-backed implementation of AccountRepository."""

from __future__ import annotations

from sqlalchemy.orm import Session

from marketcore.domain.model.account import Account, Address
from marketcore.domain.repository.account_repository import AccountRepository
from marketcore.infrastructure.persistence.tables import AccountRow, AddressRow


class SqlAccountRepository(AccountRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, user_id: int) -> Account | None:
        row = self._session.get(AccountRow, user_id)
        if row is None:
            return None
        return Account(id=row.id, email=row.email, is_active=row.is_active)

    def get_address(self, address_id: int) -> Address | None:
        row = self._session.get(AddressRow, address_id)
        if row is None:
            return None
        return Address(
            id=row.id,
            user_id=row.user_id,
            line1=row.line1,
            line2=row.line2,
            city=row.city,
            country=row.country,
            postal_code=row.postal_code,
        )

    def save(self, account: Account) -> None:
        row = self._session.get(AccountRow, account.id)
        if row is None:
            row = AccountRow(id=account.id)
            self._session.add(row)
        row.email = account.email
        row.is_active = account.is_active
        self._session.flush()

    def save_address(self, address: Address) -> None:
        row = self._session.get(AddressRow, address.id)
        if row is None:
            row = AddressRow(id=address.id)
            self._session.add(row)
        row.user_id = address.user_id
        row.line1 = address.line1
        row.line2 = address.line2
        row.city = address.city
        row.country = address.country
        row.postal_code = address.postal_code
        self._session.flush()
