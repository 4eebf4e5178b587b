# boutique/repositories/address_repo.py
import uuid

from sqlmodel import Session, select

from boutique.models.address import Address


class AddressRepository:

    def get_for_user(
        self, session: Session, user_id: uuid.UUID, address_id: uuid.UUID
    ) -> Address | None:
        stmt = select(Address).where(
            Address.id == address_id, Address.user_id == user_id
        )
        return session.exec(stmt).first()
