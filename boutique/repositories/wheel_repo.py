# boutique/repositories/wheel_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from boutique.models.wheel import WheelGamePlay, WheelGameSettings


class WheelRepository:

    def get_settings(self, session: Session) -> WheelGameSettings | None:
        stmt = select(WheelGameSettings).order_by(WheelGameSettings.updated_at.desc())
        return session.exec(stmt).first()

    def count_plays(
        self,
        session: Session,
        *,
        user_id: uuid.UUID | None = None,
        session_id: str | None = None,
        since: datetime | None = None,
    ) -> int:
        """
        Count logged plays for a user, or for an anonymous session id.
        """
        stmt = select(func.count()).select_from(WheelGamePlay)
        if user_id is not None:
            stmt = stmt.where(WheelGamePlay.user_id == user_id)
        else:
            stmt = stmt.where(WheelGamePlay.session_id == session_id)
        if since is not None:
            stmt = stmt.where(WheelGamePlay.created_at >= since)
        return session.exec(stmt).one()

    def create_play(self, session: Session, play: WheelGamePlay) -> WheelGamePlay:
        session.add(play)
        session.flush()
        return play
