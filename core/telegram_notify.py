import logging

import requests
from django.conf import settings
from django.utils.html import escape


logger = logging.getLogger(__name__)


def tg_send(text: str):
    if not getattr(settings, "TELEGRAM_NOTIFICATIONS", True):
        return

    token = getattr(settings, "TELEGRAM_BOT_TOKEN", "")
    chat_id = getattr(settings, "TELEGRAM_CHAT_ID", "")

    if not token or not chat_id:
        return

    url = f"https://api.telegram.org/bot{token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }

    try:
        requests.post(url, json=payload, timeout=5)
    except requests.RequestException:
        logger.warning("Telegram message was not sent due to a request error")


def renewal_summary_text(gym, result: dict) -> str:
    """
    Короткая сводка по пакету автопродлений для чата администраторов.
    Ошибки показываем первыми пятью, остальное счётчиком.
    """
    errors = result.get("errors") or []
    lines = [
        "🔄 <b>Автопродление абонементов</b>",
        f"Зал: <b>{escape(str(gym))}</b>",
        f"Продлено: <b>{result.get('renewed_count', 0)}</b>",
        f"Сумма: <b>{result.get('total_amount')}</b>",
        f"Новых цен: <b>{result.get('price_update_count', 0)}</b>",
    ]
    if errors:
        lines.append(f"⚠️ Ошибок: <b>{len(errors)}</b>")
        lines.extend(f"• {escape(e)}" for e in errors[:5])
        if len(errors) > 5:
            lines.append(f"… и ещё {len(errors) - 5}")
    return "\n".join(lines)
