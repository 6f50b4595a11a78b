"""
Data Store - все DAO поверх одного DatabaseService
"""

from .category_dao import CategoryDAO
from .intention_dao import IntentionDAO
from .notification_dao import NotificationDAO
from .reflection_dao import ReflectionDAO
from .schema import create_tables
from .service import DatabaseService
from .user_dao import UserDAO


class DataStore:
    """Точка доступа к данным для контроллера и планировщика"""

    def __init__(self, db_service: DatabaseService):
        self.db = db_service
        self.users = UserDAO(db_service)
        self.intentions = IntentionDAO(db_service)
        self.categories = CategoryDAO(db_service)
        self.reflections = ReflectionDAO(db_service)
        self.notifications = NotificationDAO(db_service)

    async def create_tables(self):
        await create_tables(self.db)
