"""
Notification Jobs - запланированные уведомления

Каждую минуту для пользователей, у которых настроено текущее время HH:MM:
- morning: намерения на завтра
- evening: вопрос про каждое намерение на сегодня
- monthly: итог месяца (последний день месяца)
- weekly: итог недели (воскресенье)

Отправка идёт внутри транзакции дедупликации: упавшая отправка откатывает
запись, поэтому уведомление не считается отправленным. Автоматического
повтора нет - время пользователя совпадает только с одной минутой, и
повторно его отправит лишь повторный прогон этой же минуты (догоняющий
тик планировщика или рестарт).
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict

from intentions_bot.crypto import EncryptedPayload, TextCipher
from intentions_bot.dates import is_last_day_of_month, month_range, week_range
from intentions_bot.dialogue.keyboards import KeyboardFactory
from intentions_bot.messages.formatters import TelegramFormatter

logger = logging.getLogger(__name__)

SUNDAY = 6


class NotificationJobs:
    """Утренние, вечерние, месячные и недельные уведомления"""

    def __init__(self, store, channel, cipher: TextCipher, messages):
        self.store = store
        self.channel = channel
        self.cipher = cipher
        self.messages = messages
        self.keyboards = KeyboardFactory(messages)
        self.formatter = TelegramFormatter()

    async def run_tick(self, now: datetime):
        """Один тик планировщика; now - время в опорной таймзоне"""
        time_label = now.strftime("%H:%M")
        today = now.date()

        await self.run_morning_reminders(time_label, today)
        await self.run_evening_prompts(time_label, today)

        if is_last_day_of_month(today):
            await self.run_monthly_summary(time_label, today)

        if today.weekday() == SUNDAY:
            await self.run_weekly_summary(time_label, today)

    def _text(self, user: Dict[str, Any], row: Dict[str, Any]) -> str:
        placeholder = self.messages.get_message('unable_to_decrypt', user['language'], 'general')
        return self.cipher.try_decrypt(EncryptedPayload.from_row(row)).text_or(placeholder)

    async def run_morning_reminders(self, time_label: str, today: date):
        users = await self.store.users.get_users_by_time('reminder_time', time_label)
        tomorrow = today + timedelta(days=1)

        for user in users:
            try:
                intentions = await self.store.intentions.list_by_date(user['id'], tomorrow)
                if not intentions:
                    continue

                async with self.store.notifications.claim(user['id'], 'morning', tomorrow) as claimed:
                    if not claimed:
                        continue
                    text = self.messages.get_message(
                        'tomorrow_reminder',
                        user['language'],
                        'notifications',
                        items_html=self.formatter.format_list(self._text(user, row) for row in intentions),
                    )
                    await self.channel.send_text(user['telegram_id'], text)

                logger.info(f"🌅 Morning reminder sent to user {user['id']} ({len(intentions)} intentions)")

            except Exception as e:
                logger.error(f"❌ Morning reminder failed for user {user['id']}: {e}", exc_info=True)

    async def run_evening_prompts(self, time_label: str, today: date):
        users = await self.store.users.get_users_by_time('evening_time', time_label)

        for user in users:
            try:
                intentions = await self.store.intentions.list_by_date(user['id'], today)

                for intention in intentions:
                    async with self.store.notifications.claim(
                        user['id'], 'evening', today, intention['id']
                    ) as claimed:
                        if not claimed:
                            continue
                        text = self.messages.get_message(
                            'evening_prompt',
                            user['language'],
                            'notifications',
                            text=self._text(user, intention),
                        )
                        await self.channel.send_text(
                            user['telegram_id'],
                            text,
                            self.keyboards.evening_prompt(intention['id'], user['language']),
                        )

                if intentions:
                    logger.info(f"🌙 Evening prompts sent to user {user['id']} ({len(intentions)} intentions)")

            except Exception as e:
                logger.error(f"❌ Evening prompt failed for user {user['id']}: {e}", exc_info=True)

    async def run_monthly_summary(self, time_label: str, today: date):
        users = await self.store.users.get_users_by_time('monthly_time', time_label)
        start, end = month_range(today)

        for user in users:
            try:
                async with self.store.notifications.claim(user['id'], 'monthly', start) as claimed:
                    if not claimed:
                        continue

                    intentions = await self.store.intentions.list_in_range(user['id'], start, end)
                    reflections = await self.store.reflections.count_in_range(user['id'], start, end)

                    text = self.messages.get_message(
                        'monthly_summary',
                        user['language'],
                        'notifications',
                        intentions=len({row['id'] for row in intentions}),
                        planned_dates=len(intentions),
                        reflections=reflections,
                        items_html=self.formatter.format_list(self._text(user, row) for row in intentions),
                    )
                    await self.channel.send_text(
                        user['telegram_id'],
                        text,
                        self.keyboards.static('start_new_month', user['language']),
                    )

                logger.info(f"📆 Monthly summary sent to user {user['id']}")

            except Exception as e:
                logger.error(f"❌ Monthly summary failed for user {user['id']}: {e}", exc_info=True)

    async def run_weekly_summary(self, time_label: str, today: date):
        users = await self.store.users.get_users_by_time('weekly_time', time_label)
        start, end = week_range(today)

        for user in users:
            try:
                async with self.store.notifications.claim(user['id'], 'weekly', start) as claimed:
                    if not claimed:
                        continue

                    intentions = await self.store.intentions.list_in_range(user['id'], start, end)
                    reflections = await self.store.reflections.count_in_range(user['id'], start, end)

                    text = self.messages.get_message(
                        'weekly_summary',
                        user['language'],
                        'notifications',
                        intentions=len(intentions),
                        reflections=reflections,
                    )
                    await self.channel.send_text(user['telegram_id'], text)

                logger.info(f"🗓️ Weekly summary sent to user {user['id']}")

            except Exception as e:
                logger.error(f"❌ Weekly summary failed for user {user['id']}: {e}", exc_info=True)
