# app/utils/tg_service.py
import logging
from typing import Optional, Union

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

logger = logging.getLogger(__name__)


class TelegramService:
    """Pushes moderation alerts to the admin Telegram chat"""

    def __init__(self, bot_token: str, chat_id: Union[int, str]):
        self.bot = Bot(token=bot_token)
        self.chat_id = chat_id

    async def send_alert(self, text: str, markdown: bool = False) -> bool:
        """
        Post ``text`` to the admin chat. Telegram failures are logged and
        reported as False; alerts never raise into the caller.
        """
        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.MARKDOWN_V2 if markdown else None,
                disable_web_page_preview=True,
            )
        except TelegramError as e:
            logger.error(f"Admin alert to chat {self.chat_id} failed: {e}")
            return False
        logger.info(f"Admin alert sent to chat {self.chat_id}")
        return True

    async def send_flag_alert(
        self, post_id: int, title: str, report_count: int, link: Optional[str] = None
    ) -> bool:
        lines = [
            f"🚩 *Voice \\#{post_id} auto\\-hidden*",
            escape_markdown(title, version=2),
            escape_markdown(f"{report_count} reports, awaiting review.", version=2),
        ]
        if link:
            lines.append(escape_markdown(link, version=2))
        return await self.send_alert("\n".join(lines), markdown=True)
