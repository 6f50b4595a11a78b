"""
Intentions Bot - журнал намерений и рефлексий

Пакеты:
- core: конфигурация, логирование, исключения
- crypto: шифрование свободного текста
- dates: разбор дат пользователя
- dialogue: диалоговая state machine
- database: хранилище на asyncpg
- messages: тексты en / uk
- scheduler: запланированные уведомления
"""

__version__ = "1.0.0"
