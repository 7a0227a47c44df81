from fastapi import Depends, Header
from sqlalchemy.orm import Session

from consumables.database import get_db
from consumables.errors import NotFoundError
from consumables.services import actor_service


def get_actor_id(
    x_actor_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> str | None:
    """Dependency: resolve the already-authenticated actor named by X-Actor-Id."""
    if not x_actor_id:
        return None
    actor = actor_service.get_actor(db, x_actor_id)
    if actor is None:
        raise NotFoundError("Actor not found")
    return actor.id
