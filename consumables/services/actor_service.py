from sqlalchemy.orm import Session

from consumables.models.user import User
from consumables.schemas.validation import parse_reference


def get_actor(db: Session, actor_id: str) -> User | None:
    ref = parse_reference(actor_id)
    if ref is None:
        return None
    return db.query(User).filter(User.id == ref).first()
