"""Forwarding of expiry notices to a Telegram chat."""

from collections.abc import Sequence

import structlog
from telegram import Bot
from telegram.error import TelegramError

logger = structlog.get_logger(__name__)


async def send_telegram_messages(token: str, chat_id: str, texts: Sequence[str]) -> int:
    """Send texts in order over a single bot connection; returns how many Telegram accepted.

    A rejected message is logged and skipped. If the bot cannot start, nothing is sent.
    """
    sent = 0
    try:
        async with Bot(token=token) as bot:
            for text in texts:
                try:
                    await bot.send_message(chat_id=chat_id, text=text)
                except TelegramError as e:
                    logger.warning("telegram_send_failed", chat_id=chat_id, error=str(e))
                else:
                    sent += 1
    except TelegramError as e:
        logger.exception("telegram_bot_unavailable", chat_id=chat_id, error=str(e))

    logger.debug("telegram_batch_sent", chat_id=chat_id, sent=sent, total=len(texts))
    return sent
