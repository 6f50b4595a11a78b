"""
Database Module - работа со схемой intentions

Свободный текст пользователей хранится только в зашифрованном виде
"""

from .category_dao import CategoryDAO
from .intention_dao import IntentionDAO
from .notification_dao import NotificationDAO
from .reflection_dao import ReflectionDAO
from .schema import create_tables
from .service import DatabaseService
from .store import DataStore
from .user_dao import TIME_FIELDS, UserDAO

__all__ = [
    'DatabaseService',
    'DataStore',
    'UserDAO',
    'IntentionDAO',
    'CategoryDAO',
    'ReflectionDAO',
    'NotificationDAO',
    'TIME_FIELDS',
    'create_tables',
]
