"""
Reading goal storage.

Goals are owned by an email address; update and delete are scoped by
``(id, email)`` so one user cannot touch another user's goals.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import select

from .database import Database, new_id
from .models import ReadingGoalModel


@dataclass
class StoredGoal:
    id: str
    email: str
    target: str
    progress: float
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ReadingGoalModel) -> "StoredGoal":
        return cls(
            id=model.id,
            email=model.email,
            target=model.target,
            progress=model.progress,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class GoalRepository:
    """CRUD for reading goals."""

    def __init__(self, database: Database):
        self.database = database

    def create(self, email: str, target: str) -> StoredGoal:
        """Create a goal. Progress always starts at 0."""
        with self.database.session() as session:
            goal = ReadingGoalModel(id=new_id(), email=email, target=target, progress=0)
            session.add(goal)
            session.commit()
            session.refresh(goal)

            logger.info(f"Created reading goal {goal.id} for {email}")
            return StoredGoal.from_model(goal)

    def list_for(self, email: str) -> list[StoredGoal]:
        with self.database.session() as session:
            goals = session.scalars(
                select(ReadingGoalModel)
                .where(ReadingGoalModel.email == email)
                .order_by(ReadingGoalModel.created_at.asc(), ReadingGoalModel.id.asc())
            ).all()
            return [StoredGoal.from_model(g) for g in goals]

    def _owned(self, session, goal_id: str, email: str) -> Optional[ReadingGoalModel]:
        return session.scalars(
            select(ReadingGoalModel).where(
                ReadingGoalModel.id == goal_id,
                ReadingGoalModel.email == email,
            )
        ).first()

    def update_progress(self, goal_id: str, email: str, progress: float) -> Optional[StoredGoal]:
        """
        Set goal progress. The value is stored as given.

        Returns:
            Updated StoredGoal or None
        """
        with self.database.session() as session:
            goal = self._owned(session, goal_id, email)
            if goal is None:
                return None

            goal.progress = progress
            goal.updated_at = datetime.utcnow()
            session.commit()
            session.refresh(goal)
            return StoredGoal.from_model(goal)

    def delete(self, goal_id: str, email: str) -> bool:
        with self.database.session() as session:
            goal = self._owned(session, goal_id, email)
            if goal is None:
                return False
            session.delete(goal)
            session.commit()

        logger.info(f"Deleted reading goal {goal_id}")
        return True
