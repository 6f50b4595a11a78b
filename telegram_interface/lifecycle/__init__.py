"""
Lifecycle - запуск и остановка бота

- instance_lock: один процесс бота на токен (Redis)
- bot_lifecycle: сервисы, polling, планировщик, graceful shutdown
"""

from .instance_lock import BotInstanceLock
from .bot_lifecycle import BotLifecycle

__all__ = ["BotInstanceLock", "BotLifecycle"]
