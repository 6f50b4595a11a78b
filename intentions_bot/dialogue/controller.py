"""
Dialogue Controller - диалоговая state machine бота

Одно входящее событие обрабатывается так:
загрузить сессию -> выбрать обработчик по (тип события, режим) ->
при необходимости разобрать дату / сходить в хранилище ->
изменить сессию -> отправить ответы -> сохранить изменённые поля сессии.

Сессия сохраняется только после успешной обработки: если хранилище
упало, сохранённое состояние чата не меняется.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from intentions_bot.crypto import EncryptedPayload, TextCipher
from intentions_bot.dates import DEFAULT_TIMEZONE, anchored_now, format_date_for_user, parse_time
from intentions_bot.dates.resolver import DateResolver, Invalid, RejectionReason
from intentions_bot.messages.formatters import TelegramFormatter

from . import callbacks
from .callbacks import Actions, Callbacks
from .channel import (
    ButtonEvent,
    CommandEvent,
    InboundEvent,
    Keyboard,
    MessageChannel,
    PhotoEvent,
    StartEvent,
    TextEvent,
    UserRef,
)
from .keyboards import KeyboardFactory
from .modes import (
    AwaitingBroadcastConfirm,
    AwaitingBroadcastText,
    AwaitingDate,
    AwaitingEditText,
    AwaitingFeedbackPhoto,
    AwaitingFeedbackText,
    AwaitingFreeTextConfirm,
    AwaitingIntentionText,
    AwaitingNewCategory,
    CategoryTarget,
    Idle,
    IntentionConfig,
    ReflectionCapture,
)
from .session import Session, SessionStore

logger = logging.getLogger(__name__)

DATE_REJECTION_MESSAGES = {
    RejectionReason.MALFORMED: 'invalid_date_format',
    RejectionReason.INVALID_CALENDAR: 'invalid_date_calendar',
    RejectionReason.PAST: 'invalid_date_past',
}

# Команды настройки времени -> колонка пользователя и сообщение
TIME_COMMANDS = {
    'reminder': ('reminder_time', 'reminder_set'),
    'evening': ('evening_time', 'evening_set'),
    'monthly': ('monthly_time', 'monthly_set'),
    'weekly': ('weekly_time', 'weekly_set'),
}


@dataclass
class Turn:
    """Контекст обработки одного события"""
    chat_id: int
    sender: UserRef
    session: Session
    user: Optional[Dict[str, Any]] = None

    @property
    def locale(self) -> str:
        if self.user:
            return self.user['language']
        return self.session.language or 'en'

    @property
    def user_id(self) -> int:
        return self.user['id']


def _is_blank_or_command(text: str) -> bool:
    return not text or text.startswith('/')


class DialogueController:
    """Обработка входящих событий одного чата"""

    def __init__(
        self,
        store,
        channel: MessageChannel,
        sessions: SessionStore,
        cipher: TextCipher,
        messages,
        resolver: Optional[DateResolver] = None,
        timezone: str = DEFAULT_TIMEZONE,
        admin_telegram_id: Optional[int] = None,
        reflection_prompt_ttl: timedelta = timedelta(minutes=30),
        welcome_image_path: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.channel = channel
        self.sessions = sessions
        self.cipher = cipher
        self.messages = messages
        self.resolver = resolver or DateResolver(timezone)
        self.timezone = timezone
        self.admin_telegram_id = admin_telegram_id
        self.reflection_prompt_ttl = reflection_prompt_ttl
        self.welcome_image_path = welcome_image_path
        self._clock = clock or (lambda: anchored_now(self.timezone))
        # aiogram обрабатывает апдейты задачами, один чат - одна очередь
        self._chat_locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

        self.keyboards = KeyboardFactory(messages)
        self.formatter = TelegramFormatter()

        # Метки reply кнопок распознаются на любом языке
        self._language_labels = {
            messages.get_button_text('language_en', 'en'): 'en',
            messages.get_button_text('language_uk', 'uk'): 'uk',
        }
        self._menu_labels = self._labels({
            'menu_add': 'add',
            'menu_show': 'show',
            'menu_reflections': 'reflections',
            'menu_categories': 'categories',
            'menu_broadcast': 'broadcast',
        })
        self._config_labels = self._labels({
            'config_add_date': 'add_date',
            'config_add_category': 'add_category',
            'config_done': 'done',
        })
        self._reflection_labels = self._labels({
            'reflection_done': 'done',
            'reflection_cancel': 'cancel',
        })

        self._button_handlers = {
            Callbacks.LEARN_MORE: self._on_learn_more,
            Callbacks.FREE_TEXT_YES: self._on_free_text_yes,
            Callbacks.FREE_TEXT_NO: self._on_free_text_no,
            Actions.INTENT_SELECT: self._on_intent_select,
            Actions.INTENT_ADD_DATE: self._on_intent_add_date,
            Actions.INTENT_DATE: self._on_intent_date,
            Actions.INTENT_DONE: self._on_intent_done,
            Actions.INTENT_EDIT: self._on_intent_edit,
            Actions.INTENT_DELETE: self._on_intent_delete,
            Actions.INTENT_CAT: self._on_intent_cat,
            Actions.CAT_PICK: self._on_cat_pick,
            Actions.CAT_NEW: self._on_cat_new,
            Callbacks.CAT_ADD: self._on_cat_add,
            Actions.CAT_SHOW: self._on_cat_show,
            Actions.CAT_ADD_INTENTION: self._on_cat_add_intention,
            Callbacks.CAT_BACK: self._on_cat_back,
            Callbacks.REFLECT_YES: self._on_reflect_yes,
            Callbacks.FEEDBACK_WRITE: self._on_feedback_write,
            Callbacks.FEEDBACK_PHOTO: self._on_feedback_photo,
            Callbacks.FEEDBACK_SKIP: self._on_feedback_skip,
            Callbacks.START_NEW_MONTH: self._on_start_new_month,
            Callbacks.BROADCAST_YES: self._on_broadcast_yes,
            Callbacks.BROADCAST_NO: self._on_broadcast_no,
        }

    def _labels(self, keys: Dict[str, str]) -> Dict[str, str]:
        labels = {}
        for key, action in keys.items():
            for label in self.messages.button_variants(key):
                labels[label] = action
        return labels

    # ========== Entry point ==========

    async def handle(self, event: InboundEvent) -> None:
        """Обработать событие и сохранить сессию, события одного чата по очереди"""
        lock = self._chat_locks.get(event.chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._chat_locks[event.chat_id] = lock

        async with lock:
            await self._handle(event)

    async def _handle(self, event: InboundEvent) -> None:
        session = await self.sessions.load(event.chat_id, event.user.telegram_id)
        turn = Turn(chat_id=event.chat_id, sender=event.user, session=session)
        mode_before = type(session.mode).__name__

        if isinstance(event, StartEvent):
            await self._on_start(turn)
        elif isinstance(event, CommandEvent):
            await self._on_command(turn, event.name, event.args)
        elif isinstance(event, TextEvent):
            await self._on_text(turn, event.text.strip())
        elif isinstance(event, PhotoEvent):
            await self._on_photo(turn, event.file_id, event.caption)
        elif isinstance(event, ButtonEvent):
            await self._on_button(turn, event.data)
        else:
            logger.warning(f"⚠️ Unsupported event {type(event).__name__}")
            return

        mode_after = type(session.mode).__name__
        if mode_before != mode_after:
            logger.info(f"🔄 Chat {event.chat_id}: {mode_before} -> {mode_after}")

        await self.sessions.save(event.chat_id, event.user.telegram_id, session)

    # ========== Helpers ==========

    def _now(self) -> datetime:
        return self._clock()

    def _t(self, turn: Turn, key: str, category: str = 'general', /, **kwargs) -> str:
        return self.messages.get_message(key, turn.locale, category, **kwargs)

    async def _send(self, turn: Turn, text: str, keyboard: Optional[Keyboard] = None):
        await self.channel.send_text(turn.chat_id, text, keyboard)

    def _is_admin(self, turn: Turn) -> bool:
        if not turn.user:
            return False
        return bool(turn.user.get('is_admin')) or (
            self.admin_telegram_id is not None and turn.user['telegram_id'] == self.admin_telegram_id
        )

    def _main_menu(self, turn: Turn):
        return self.keyboards.main_menu(turn.locale, self._is_admin(turn))

    def _decrypt(self, turn: Turn, row: Dict[str, Any]) -> str:
        result = self.cipher.try_decrypt(EncryptedPayload.from_row(row))
        return result.text_or(self._t(turn, 'unable_to_decrypt'))

    async def _require_user(self, turn: Turn) -> Optional[Dict[str, Any]]:
        """Пользователь из БД; если его нет - показать выбор языка"""
        user = await self.store.users.get_user_by_telegram_id(turn.sender.telegram_id)
        if not user:
            await self._send_language_selection(turn)
            return None

        await self.store.users.update_profile(
            turn.sender.telegram_id,
            turn.sender.first_name,
            turn.sender.last_name,
            turn.sender.username,
        )
        turn.user = user
        turn.session.language = user['language']
        return user

    async def _send_language_selection(self, turn: Turn):
        welcome = self._t(turn, 'welcome')
        if self.welcome_image_path:
            await self.channel.send_photo(turn.chat_id, self.welcome_image_path, caption=welcome)
        else:
            await self._send(turn, welcome)
        await self._send(turn, self._t(turn, 'choose_language'), self.keyboards.language())

    async def _send_intro_and_menu(self, turn: Turn):
        await self._send(turn, self._t(turn, 'intro'), self._main_menu(turn))
        await self._send(turn, self._t(turn, 'privacy'), self.keyboards.static('learn_more', turn.locale))

    async def _steer_to_menu(self, turn: Turn):
        """Чужой или удалённый id: нейтральный возврат в меню"""
        turn.session.reset()
        await self._send(turn, self._t(turn, 'not_available'), self._main_menu(turn))

    async def _owned_intention(self, turn: Turn, intention_id: Optional[int]) -> Optional[Dict[str, Any]]:
        if not intention_id:
            return None
        return await self.store.intentions.get_for_user(turn.user_id, intention_id)

    def _config_intention_id(self, turn: Turn) -> Optional[int]:
        """id намерения, если сессия в режиме конфигурации"""
        mode = turn.session.mode
        if isinstance(mode, IntentionConfig):
            return mode.intention_id
        if isinstance(mode, (AwaitingDate, AwaitingNewCategory)) and mode.in_config:
            return mode.intention_id
        return None

    # ========== Start / commands ==========

    async def _on_start(self, turn: Turn):
        if turn.session.in_reflection:
            return

        user = await self._require_user(turn)
        if not user:
            return

        turn.session.reset()
        await self._send_intro_and_menu(turn)

    async def _on_command(self, turn: Turn, name: str, args: str):
        if turn.session.in_reflection:
            return

        if name == 'start':
            await self._on_start(turn)
            return

        if name == 'language':
            await self._send(turn, self._t(turn, 'choose_language'), self.keyboards.language())
            return

        user = await self._require_user(turn)
        if not user:
            return

        if name == 'help':
            await self._send(turn, self._t(turn, 'help'), self._main_menu(turn))
            return

        if name in TIME_COMMANDS:
            field, message_key = TIME_COMMANDS[name]
            value = parse_time(args or '')
            if not value:
                await self._send(turn, self._t(turn, 'invalid_time'))
                return
            turn.user = await self.store.users.update_time(user['telegram_id'], field, value)
            await self._send(turn, self._t(turn, message_key, time=value))
            return

        logger.debug(f"Unknown command /{name} from chat {turn.chat_id}")

    # ========== Text ==========

    async def _on_text(self, turn: Turn, text: str):
        session = turn.session

        language = self._language_labels.get(text)
        if language:
            if session.in_reflection:
                return
            await self._select_language(turn, language)
            return

        user = await self._require_user(turn)
        if not user:
            return

        menu_action = self._menu_labels.get(text)
        if menu_action == 'broadcast' and not self._is_admin(turn):
            menu_action = None

        if menu_action:
            if session.in_reflection:
                return
            await self._run_menu_action(turn, menu_action)
            return

        if isinstance(session.mode, ReflectionCapture):
            await self._on_reflection_text(turn, text)
            return

        config_action = self._config_labels.get(text)
        intention_id = self._config_intention_id(turn)
        if config_action and intention_id:
            await self._on_config_action(turn, config_action, intention_id)
            return

        await self._dispatch_text(turn, text)

    async def _select_language(self, turn: Turn, language: str):
        sender = turn.sender
        turn.user = await self.store.users.upsert_language(
            sender.telegram_id,
            language,
            first_name=sender.first_name,
            last_name=sender.last_name,
            username=sender.username,
        )
        turn.session.language = language
        await self._send_intro_and_menu(turn)

    async def _run_menu_action(self, turn: Turn, action: str):
        # Выход из конфигурации намерения через меню
        if self._config_intention_id(turn) and action != 'add':
            turn.session.reset()
            await self._send(turn, self._t(turn, 'main_menu_title'), self._main_menu(turn))

        if action == 'add':
            await self._start_add_intention(turn)
        elif action == 'show':
            await self._show_intentions(turn)
        elif action == 'reflections':
            await self._show_reflections(turn)
        elif action == 'categories':
            await self._show_categories(turn)
        elif action == 'broadcast':
            turn.session.enter(AwaitingBroadcastText())
            await self._send(turn, self._t(turn, 'broadcast_prompt'))

    async def _dispatch_text(self, turn: Turn, text: str):
        mode = turn.session.mode

        if isinstance(mode, (Idle, IntentionConfig)):
            if _is_blank_or_command(text):
                return
            turn.session.enter(AwaitingFreeTextConfirm(text=text))
            await self._send_free_text_prompt(turn, text)

        elif isinstance(mode, AwaitingFreeTextConfirm):
            await self._send_free_text_prompt(turn, mode.text)

        elif isinstance(mode, AwaitingIntentionText):
            if _is_blank_or_command(text):
                await self._send(turn, self._t(turn, 'add_prompt', 'intentions'))
                return
            await self._create_intention(turn, text, mode.category_id)

        elif isinstance(mode, AwaitingDate):
            await self._on_date_text(turn, mode, text)

        elif isinstance(mode, AwaitingEditText):
            if _is_blank_or_command(text):
                await self._send(turn, self._t(turn, 'edit_prompt', 'intentions'))
                return
            updated = await self.store.intentions.update_text(
                turn.user_id, mode.intention_id, self.cipher.encrypt(text)
            )
            if not updated:
                await self._steer_to_menu(turn)
                return
            turn.session.reset()
            await self._send(turn, self._t(turn, 'intention_updated', 'intentions'), self._main_menu(turn))

        elif isinstance(mode, AwaitingNewCategory):
            await self._on_category_name(turn, mode, text)

        elif isinstance(mode, AwaitingFeedbackText):
            if _is_blank_or_command(text):
                await self._send(turn, self._t(turn, 'feedback_text_prompt', 'reflections'))
                return
            await self._save_reflection(turn, text, [], mode.intention_id)
            turn.session.reset()
            await self._send(turn, self._t(turn, 'feedback_saved', 'reflections'), self._main_menu(turn))

        elif isinstance(mode, AwaitingFeedbackPhoto):
            await self._send(turn, self._t(turn, 'photo_prompt', 'reflections'))

        elif isinstance(mode, AwaitingBroadcastText):
            if not self._is_admin(turn):
                turn.session.reset()
                return
            if _is_blank_or_command(text):
                await self._send(turn, self._t(turn, 'broadcast_prompt'))
                return
            turn.session.enter(AwaitingBroadcastConfirm(text=text))
            await self._send(
                turn,
                self._t(turn, 'broadcast_preview', text=text),
                self.keyboards.static('broadcast_confirm', turn.locale),
            )

        elif isinstance(mode, AwaitingBroadcastConfirm):
            await self._send(
                turn,
                self._t(turn, 'broadcast_preview', text=mode.text),
                self.keyboards.static('broadcast_confirm', turn.locale),
            )

    async def _send_free_text_prompt(self, turn: Turn, text: str):
        await self._send(
            turn,
            self._t(turn, 'free_text_prompt', text=text),
            self.keyboards.static('free_text_confirm', turn.locale),
        )

    # ========== Intentions ==========

    async def _start_add_intention(self, turn: Turn, category_id: Optional[int] = None):
        turn.session.enter(AwaitingIntentionText(category_id=category_id))
        await self._send(turn, self._t(turn, 'add_prompt', 'intentions'), self._main_menu(turn))

    async def _create_intention(self, turn: Turn, text: str, category_id: Optional[int] = None):
        intention = await self.store.intentions.create(turn.user_id, self.cipher.encrypt(text), category_id)
        await self._enter_config(turn, intention['id'])

    async def _enter_config(self, turn: Turn, intention_id: int):
        turn.session.enter(IntentionConfig(intention_id=intention_id))
        await self._send(
            turn,
            self._t(turn, 'config_prompt', 'intentions'),
            self.keyboards.intention_config(turn.locale),
        )

    async def _finalize(self, turn: Turn, intention_id: int):
        """Итог: сводка по намерению и главное меню"""
        intention = await self._owned_intention(turn, intention_id)
        if not intention:
            await self._steer_to_menu(turn)
            return

        turn.session.reset()
        await self._send(
            turn,
            self._t(
                turn,
                'saved_summary',
                'intentions',
                text=self._decrypt(turn, intention),
                date=format_date_for_user(intention['date'], turn.locale) if intention['date'] else '',
                category=intention.get('category_name') or '',
            ),
            self._main_menu(turn),
        )

    async def _on_config_action(self, turn: Turn, action: str, intention_id: int):
        if action == 'add_date':
            turn.session.enter(AwaitingDate(intention_id=intention_id, in_config=True))
            await self._send(
                turn,
                self._t(turn, 'choose_date', 'intentions'),
                self.keyboards.intention_config(turn.locale),
            )
        elif action == 'add_category':
            turn.session.enter(IntentionConfig(intention_id=intention_id))
            await self._send_category_picker(turn, intention_id)
        elif action == 'done':
            await self._finalize(turn, intention_id)

    async def _on_date_text(self, turn: Turn, mode: AwaitingDate, text: str):
        outcome = self.resolver.resolve(text, locale=turn.locale, now=self._now())
        if isinstance(outcome, Invalid):
            await self._send(turn, self._t(turn, DATE_REJECTION_MESSAGES[outcome.reason], 'intentions'))
            return

        saved = await self.store.intentions.set_date(turn.user_id, mode.intention_id, outcome.value)
        if not saved:
            await self._steer_to_menu(turn)
            return

        if mode.in_config:
            turn.session.enter(IntentionConfig(intention_id=mode.intention_id))
            await self._send(
                turn,
                self._t(turn, 'date_saved', 'intentions', date=format_date_for_user(outcome.value, turn.locale)),
            )
            await self._send(
                turn,
                self._t(turn, 'config_prompt', 'intentions'),
                self.keyboards.intention_config(turn.locale),
            )
        else:
            await self._finalize(turn, mode.intention_id)

    async def _show_intentions(self, turn: Turn):
        turn.session.reset()
        intentions = await self.store.intentions.list_for_user(turn.user_id)
        if not intentions:
            await self._send(turn, self._t(turn, 'no_intentions', 'intentions'), self._main_menu(turn))
            return

        items = []
        for intention in intentions:
            text = self._decrypt(turn, intention)
            if intention['date']:
                text = f"{text} - {format_date_for_user(intention['date'], turn.locale)}"
            items.append({'id': intention['id'], 'label': self.formatter.trim_label(text)})

        await self._send(
            turn,
            self._t(turn, 'intentions_header', 'intentions'),
            self.keyboards.intention_list(items),
        )

    # ========== Categories ==========

    async def _show_categories(self, turn: Turn):
        turn.session.reset()
        categories = await self.store.categories.list_for_user(turn.user_id)
        key = 'categories_header' if categories else 'no_categories'
        await self._send(
            turn,
            self._t(turn, key, 'categories'),
            self.keyboards.category_list(categories, turn.locale),
        )

    async def _send_category_picker(self, turn: Turn, intention_id: int):
        categories = await self.store.categories.list_for_user(turn.user_id)
        await self._send(
            turn,
            self._t(turn, 'choose_category', 'intentions'),
            self.keyboards.category_picker(intention_id, categories, turn.locale),
        )

    async def _on_category_name(self, turn: Turn, mode: AwaitingNewCategory, text: str):
        if _is_blank_or_command(text):
            await self._send(turn, self._t(turn, 'category_prompt', 'categories'))
            return

        category = await self.store.categories.get_or_create(turn.user_id, text)

        if mode.target == CategoryTarget.MANAGE:
            turn.session.reset()
            await self._send(
                turn,
                self._t(turn, 'category_ready', 'categories', name=category['name']),
                self.keyboards.category_detail(category['id'], turn.locale),
            )
            return

        await self._attach_category(turn, mode.intention_id, category, mode.in_config)

    async def _attach_category(self, turn: Turn, intention_id: Optional[int], category: Dict[str, Any], in_config: bool):
        attached = intention_id and await self.store.intentions.set_category(
            turn.user_id, intention_id, category['id']
        )
        if not attached:
            await self._steer_to_menu(turn)
            return

        if in_config:
            await self._send(turn, self._t(turn, 'category_attached', 'categories', name=category['name']))
            await self._enter_config(turn, intention_id)
        else:
            await self._finalize(turn, intention_id)

    # ========== Reflections ==========

    async def _start_reflection(self, turn: Turn, intention: Optional[Dict[str, Any]]):
        turn.session.enter(ReflectionCapture(
            intention_id=intention['id'] if intention else None,
            started_at=self._now().isoformat(),
        ))
        await self._send(
            turn,
            self._t(
                turn,
                'reflection_instructions',
                'reflections',
                intention=self._decrypt(turn, intention) if intention else '',
            ),
            self.keyboards.reflection_mode(turn.locale),
        )

    async def _on_reflection_text(self, turn: Turn, text: str):
        capture = turn.session.mode
        action = self._reflection_labels.get(text)

        if action == 'done':
            await self._finish_reflection(turn, capture)
        elif action == 'cancel':
            turn.session.reset()
            await self._send(turn, self._t(turn, 'reflection_cancel_ack', 'reflections'), self._main_menu(turn))
        elif not _is_blank_or_command(text):
            turn.session.enter(capture.with_text(text))

    async def _finish_reflection(self, turn: Turn, capture: ReflectionCapture):
        turn.session.reset()
        if capture.is_empty:
            await self._send(turn, self._t(turn, 'reflection_empty', 'reflections'), self._main_menu(turn))
            return

        await self._save_reflection(turn, "\n".join(capture.parts), capture.photos, capture.intention_id)
        await self._send(turn, self._t(turn, 'reflection_saved', 'reflections'), self._main_menu(turn))

    async def _save_reflection(self, turn: Turn, text: str, photos, intention_id: Optional[int]):
        await self.store.reflections.create(
            turn.user_id,
            self.cipher.encrypt(text),
            list(photos),
            self._now().date(),
            intention_id,
        )

    async def _show_reflections(self, turn: Turn):
        turn.session.reset()
        reflections = await self.store.reflections.list_for_user(turn.user_id)
        if not reflections:
            await self._send(
                turn,
                self._t(turn, 'no_reflections', 'reflections'),
                self.keyboards.new_reflection(turn.locale),
            )
            return

        await self._send(
            turn,
            self._t(turn, 'reflections_header', 'reflections'),
            self.keyboards.new_reflection(turn.locale),
        )

        caption_limit = self.formatter.constants.LIMITS['caption_length']
        for reflection in reflections:
            text = self._decrypt(turn, reflection) or self._t(turn, 'photo_reflection', 'reflections')
            caption = self._t(
                turn,
                'reflection_item',
                'reflections',
                date=format_date_for_user(reflection['date'], turn.locale),
                text=text,
            )
            photos = reflection.get('photo_file_ids') or []
            if not photos:
                await self._send(turn, caption)
                continue

            first, *rest = photos
            await self.channel.send_photo(
                turn.chat_id, first, caption=self.formatter.truncate_message(caption, caption_limit)
            )
            for photo in rest:
                await self.channel.send_photo(turn.chat_id, photo)

    # ========== Photo ==========

    async def _on_photo(self, turn: Turn, file_id: str, caption: Optional[str]):
        mode = turn.session.mode

        if isinstance(mode, ReflectionCapture):
            turn.session.enter(mode.with_photo(file_id, (caption or '').strip() or None))
            return

        if isinstance(mode, AwaitingFeedbackPhoto):
            user = await self._require_user(turn)
            if not user:
                return
            await self._save_reflection(turn, (caption or '').strip(), [file_id], mode.intention_id)
            turn.session.reset()
            await self._send(turn, self._t(turn, 'photo_saved', 'reflections'), self._main_menu(turn))

    # ========== Buttons ==========

    async def _on_button(self, turn: Turn, data: str):
        parsed = callbacks.parse(data)
        if parsed is None:
            logger.warning(f"⚠️ Malformed callback data in chat {turn.chat_id}")
            return

        if turn.session.in_reflection:
            if parsed.action != Callbacks.REFLECT_NO:
                await self._send(turn, self._t(turn, 'finish_reflection_first'))
            return

        if parsed.action == Callbacks.REFLECT_NO:
            await self._send(turn, self._t(turn, 'reflection_declined', 'reflections'))
            return

        handler = self._button_handlers.get(parsed.action)
        if handler is None:
            logger.warning(f"⚠️ Unknown callback action {parsed.action!r}")
            return

        user = await self._require_user(turn)
        if not user:
            return

        await handler(turn, parsed)

    async def _on_learn_more(self, turn: Turn, parsed):
        await self._send(turn, self._t(turn, 'optional_info'), self._main_menu(turn))

    async def _on_free_text_yes(self, turn: Turn, parsed):
        mode = turn.session.mode
        text = mode.text.strip() if isinstance(mode, AwaitingFreeTextConfirm) else ''
        if not text:
            turn.session.reset()
            await self._send(turn, self._t(turn, 'other_action'), self._main_menu(turn))
            return
        await self._create_intention(turn, text)

    async def _on_free_text_no(self, turn: Turn, parsed):
        turn.session.reset()
        await self._send(turn, self._t(turn, 'other_action'), self._main_menu(turn))

    async def _on_intent_select(self, turn: Turn, parsed):
        intention = await self._owned_intention(turn, parsed.first_id)
        if not intention:
            await self._steer_to_menu(turn)
            return

        turn.session.reset()
        turn.session.select(intention['id'], self._now())
        await self._send(
            turn,
            self._t(
                turn,
                'intention_detail',
                'intentions',
                text=self._decrypt(turn, intention),
                date=format_date_for_user(intention['date'], turn.locale) if intention['date'] else '',
                category=intention.get('category_name') or '',
            ),
            self.keyboards.intention_detail(intention['id'], bool(intention['date']), turn.locale),
        )

    async def _ask_date(self, turn: Turn, parsed, in_config: bool):
        intention = await self._owned_intention(turn, parsed.first_id)
        if not intention:
            await self._steer_to_menu(turn)
            return
        turn.session.enter(AwaitingDate(intention_id=intention['id'], in_config=in_config))
        await self._send(turn, self._t(turn, 'choose_date', 'intentions'))

    async def _on_intent_add_date(self, turn: Turn, parsed):
        await self._ask_date(turn, parsed, in_config=False)

    async def _on_intent_date(self, turn: Turn, parsed):
        await self._ask_date(turn, parsed, in_config=True)

    async def _on_intent_done(self, turn: Turn, parsed):
        if not parsed.first_id:
            await self._steer_to_menu(turn)
            return
        await self._finalize(turn, parsed.first_id)

    async def _on_intent_edit(self, turn: Turn, parsed):
        intention = await self._owned_intention(turn, parsed.first_id)
        if not intention:
            await self._steer_to_menu(turn)
            return
        turn.session.enter(AwaitingEditText(intention_id=intention['id']))
        await self._send(turn, self._t(turn, 'edit_prompt', 'intentions'))

    async def _on_intent_delete(self, turn: Turn, parsed):
        # Ответ одинаковый, даже если удалять было нечего
        if parsed.first_id:
            await self.store.intentions.delete(turn.user_id, parsed.first_id)
        if turn.session.selection and turn.session.selection.intention_id == parsed.first_id:
            turn.session.selection = None
        turn.session.reset()
        await self._send(turn, self._t(turn, 'intention_deleted', 'intentions'), self._main_menu(turn))

    async def _on_intent_cat(self, turn: Turn, parsed):
        intention = await self._owned_intention(turn, parsed.first_id)
        if not intention:
            await self._steer_to_menu(turn)
            return
        if self._config_intention_id(turn) != intention['id']:
            turn.session.reset()
        await self._send_category_picker(turn, intention['id'])

    async def _on_cat_pick(self, turn: Turn, parsed):
        if len(parsed.ids) != 2:
            await self._steer_to_menu(turn)
            return
        intention_id, category_id = parsed.ids
        category = await self.store.categories.get_for_user(turn.user_id, category_id)
        if not category:
            await self._steer_to_menu(turn)
            return
        in_config = self._config_intention_id(turn) == intention_id
        await self._attach_category(turn, intention_id, category, in_config)

    async def _on_cat_new(self, turn: Turn, parsed):
        intention = await self._owned_intention(turn, parsed.first_id)
        if not intention:
            await self._steer_to_menu(turn)
            return
        turn.session.enter(AwaitingNewCategory(
            target=CategoryTarget.ATTACH,
            intention_id=intention['id'],
            in_config=self._config_intention_id(turn) == intention['id'],
        ))
        await self._send(turn, self._t(turn, 'category_prompt', 'categories'))

    async def _on_cat_add(self, turn: Turn, parsed):
        turn.session.enter(AwaitingNewCategory(target=CategoryTarget.MANAGE))
        await self._send(turn, self._t(turn, 'category_prompt', 'categories'))

    async def _on_cat_show(self, turn: Turn, parsed):
        category = parsed.first_id and await self.store.categories.get_for_user(turn.user_id, parsed.first_id)
        if not category:
            await self._steer_to_menu(turn)
            return

        intentions = await self.store.intentions.list_by_category(turn.user_id, category['id'])
        if intentions:
            text = self._t(
                turn,
                'category_items',
                'categories',
                name=category['name'],
                items_html=self.formatter.format_list(self._decrypt(turn, row) for row in intentions),
            )
        else:
            text = self._t(turn, 'category_empty', 'categories', name=category['name'])

        await self._send(turn, text, self.keyboards.category_detail(category['id'], turn.locale))

    async def _on_cat_add_intention(self, turn: Turn, parsed):
        category = parsed.first_id and await self.store.categories.get_for_user(turn.user_id, parsed.first_id)
        if not category:
            await self._steer_to_menu(turn)
            return
        await self._start_add_intention(turn, category_id=category['id'])

    async def _on_cat_back(self, turn: Turn, parsed):
        await self._show_categories(turn)

    async def _on_reflect_yes(self, turn: Turn, parsed):
        if parsed.first_id:
            # Явная цель из вечернего уведомления
            intention = await self._owned_intention(turn, parsed.first_id)
            if not intention:
                await self._steer_to_menu(turn)
                return
        else:
            # Неявная цель: последнее открытое намерение, если выбрано недавно
            selected_id = turn.session.fresh_selection(self._now(), self.reflection_prompt_ttl)
            intention = await self._owned_intention(turn, selected_id)

        await self._start_reflection(turn, intention)

    async def _feedback_target(self, turn: Turn, parsed) -> Optional[Dict[str, Any]]:
        return await self._owned_intention(turn, parsed.first_id)

    async def _on_feedback_write(self, turn: Turn, parsed):
        intention = await self._feedback_target(turn, parsed)
        if parsed.first_id and not intention:
            await self._steer_to_menu(turn)
            return
        turn.session.enter(AwaitingFeedbackText(intention_id=intention['id'] if intention else None))
        await self._send(turn, self._t(turn, 'feedback_text_prompt', 'reflections'))

    async def _on_feedback_photo(self, turn: Turn, parsed):
        intention = await self._feedback_target(turn, parsed)
        if parsed.first_id and not intention:
            await self._steer_to_menu(turn)
            return
        turn.session.enter(AwaitingFeedbackPhoto(intention_id=intention['id'] if intention else None))
        await self._send(turn, self._t(turn, 'photo_prompt', 'reflections'))

    async def _on_feedback_skip(self, turn: Turn, parsed):
        turn.session.reset()
        await self._send(turn, self._t(turn, 'skip_ack', 'reflections'), self._main_menu(turn))

    async def _on_start_new_month(self, turn: Turn, parsed):
        await self._send(turn, self._t(turn, 'new_month_started', 'notifications'))
        await self._start_add_intention(turn)

    async def _on_broadcast_yes(self, turn: Turn, parsed):
        mode = turn.session.mode
        if not self._is_admin(turn) or not isinstance(mode, AwaitingBroadcastConfirm):
            turn.session.reset()
            await self._send(turn, self._t(turn, 'other_action'), self._main_menu(turn))
            return

        recipients = await self.store.users.get_all_telegram_ids()
        sent = 0
        for telegram_id in recipients:
            try:
                await self.channel.send_text(telegram_id, self.formatter.escape_html(mode.text))
                sent += 1
            except Exception as e:
                logger.warning(f"⚠️ Broadcast to {telegram_id} failed: {e}")

        logger.info(f"📣 Broadcast delivered to {sent}/{len(recipients)} users")
        turn.session.reset()
        await self._send(
            turn,
            self._t(turn, 'broadcast_sent', sent=sent, total=len(recipients)),
            self._main_menu(turn),
        )

    async def _on_broadcast_no(self, turn: Turn, parsed):
        turn.session.reset()
        await self._send(turn, self._t(turn, 'broadcast_cancelled'), self._main_menu(turn))
