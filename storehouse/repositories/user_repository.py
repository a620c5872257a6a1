"""
User Repository - Data Access Layer
"""
from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from storehouse.models.company import User


class UserRepository:
    """Repository for User lookups"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return self.db.query(User).filter(User.id == user_id).first()
    
    def get_by_ids(self, user_ids: Iterable[str]) -> List[User]:
        """Get users whose IDs are in user_ids"""
        ids = list(user_ids)
        if not ids:
            return []
        return self.db.query(User).filter(User.id.in_(ids)).all()
    
    def get_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ID to user name"""
        return {user.id: user.user_name for user in self.get_by_ids(user_ids)}
