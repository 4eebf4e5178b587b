# boutique/repositories/profile_repo.py
import uuid

from sqlmodel import Session, select

from boutique.models.profile import Profile


class ProfileRepository:
    """
    Data access layer for profiles.
    """

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> Profile | None:
        return session.get(Profile, user_id)

    def create(self, session: Session, profile: Profile) -> Profile:
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    def lock(self, session: Session, user_id: uuid.UUID) -> Profile | None:
        """
        SELECT ... FOR UPDATE on the profile row.

        Serializes concurrent checkouts of the same customer until the
        surrounding transaction ends. No-op on backends without row locks.
        """
        stmt = select(Profile).where(Profile.id == user_id).with_for_update()
        return session.exec(stmt).first()
