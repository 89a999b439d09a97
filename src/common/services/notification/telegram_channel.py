import logging
from typing import Optional

from telegram import Bot

from src.common.config.settings import settings
from .channel import NotificationChannel

logger = logging.getLogger(__name__)


class TelegramChannel(NotificationChannel):
    """python-telegram-bot 으로 chat_id 에 메시지를 보내는 채널"""

    name = "telegram"

    def __init__(self, token: Optional[str] = None):
        self.token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        self._bot: Optional[Bot] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def _get_bot(self) -> Bot:
        if self._bot is None:
            self._bot = Bot(token=self.token)
        return self._bot

    async def send(self, recipient: str, message: str, parse_mode: Optional[str] = None, **kwargs) -> bool:
        if not self.is_configured:
            logger.warning("TELEGRAM_BOT_TOKEN is not set. Skipping message sending.")
            return False

        if not message or not message.strip():
            logger.warning(f"빈 메시지는 전송하지 않습니다: chat_id={recipient}")
            return False

        try:
            chat_id = int(recipient)
        except (TypeError, ValueError):
            logger.error(f"잘못된 텔레그램 chat_id: {recipient}")
            return False

        send_kwargs = {"chat_id": chat_id, "text": message}
        if parse_mode:
            send_kwargs["parse_mode"] = parse_mode

        try:
            sent_message = await self._get_bot().send_message(**send_kwargs)
        except Exception as e:
            logger.error(f"[텔레그램 알림 전송 실패] chat_id: {chat_id}, error: {e}", exc_info=True)
            return False

        if not sent_message:
            logger.warning(f"텔레그램 응답에 메시지 객체가 없습니다: chat_id={chat_id}")
            return False
        logger.info(f"텔레그램 메시지 전송 완료: chat_id={chat_id}, message_id={sent_message.message_id}")
        return True
