"""Telegram Command Bot - Imperative Shell.

Long-polling bot that lets Telegram users subscribe to alerts:
/start registers the chat id and shows the welcome keyboard, /help and
/info describe the app, and the inline buttons reply with the user's id
or the app description.
"""

import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes
from telegram.request import HTTPXRequest

from safequake.core.formatter import (
    ALREADY_REGISTERED_TEXT,
    INFO_TEXT,
    REGISTERED_TEXT,
    REGISTRATION_FAILED_TEXT,
    UNKNOWN_COMMAND_TEXT,
    WELCOME_TEXT,
    format_my_id,
)
from safequake.shell.firestore_client import FirestoreClient


logger = logging.getLogger(__name__)


CALLBACK_MY_ID = "mioId"
CALLBACK_INFO = "info"

# Telegram API timeouts (seconds)
CONNECT_TIMEOUT = 30.0
READ_TIMEOUT = 30.0


def welcome_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("Mostra Mio ID Telegram", callback_data=CALLBACK_MY_ID)],
        [InlineKeyboardButton("Informazioni App", callback_data=CALLBACK_INFO)],
    ])


class BotHandlers:
    """Telegram bot command handlers"""

    def __init__(self, store: FirestoreClient):
        self.store = store

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command - register the chat id"""
        chat_id = update.effective_chat.id
        result = self.store.add_telegram_subscriber(chat_id)

        if result.created:
            logger.info("Registered Telegram subscriber %s", chat_id)
            reply = REGISTERED_TEXT
        elif result.conflict:
            reply = ALREADY_REGISTERED_TEXT
        else:
            reply = REGISTRATION_FAILED_TEXT

        await update.message.reply_text(reply)
        await update.message.reply_text(WELCOME_TEXT, reply_markup=welcome_keyboard())

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help and /info commands"""
        await update.message.reply_text(INFO_TEXT)

    async def handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle inline keyboard button callbacks"""
        query = update.callback_query
        await query.answer()

        if query.data == CALLBACK_MY_ID:
            await query.message.reply_text(format_my_id(query.from_user.id))
        elif query.data == CALLBACK_INFO:
            await query.message.reply_text(INFO_TEXT)
        else:
            logger.info("Unknown callback data: %s", query.data)
            await query.message.reply_text(UNKNOWN_COMMAND_TEXT)


class SafeQuakeBot:
    """Telegram bot wrapper"""

    def __init__(self, token: str, store: FirestoreClient | None = None):
        self.token = token
        self.handlers = BotHandlers(store or FirestoreClient())
        self.application: Application | None = None

    def setup(self) -> Application:
        """Setup bot application with handlers"""
        request = HTTPXRequest(
            connect_timeout=CONNECT_TIMEOUT,
            read_timeout=READ_TIMEOUT,
        )

        self.application = (
            Application.builder()
            .token(self.token)
            .request(request)
            .build()
        )

        self.application.add_handler(CommandHandler("start", self.handlers.start))
        self.application.add_handler(CommandHandler(["help", "info"], self.handlers.help))
        self.application.add_handler(CallbackQueryHandler(self.handlers.handle_callback))

        return self.application

    def run(self) -> None:
        """Start long polling; blocks until interrupted."""
        application = self.application or self.setup()
        logger.info("Starting Telegram bot polling")
        application.run_polling(allowed_updates=Update.ALL_TYPES)
