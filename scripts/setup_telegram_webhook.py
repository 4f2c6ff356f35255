#!/usr/bin/env python3
"""Script para configurar el webhook de Telegram del Reminder Bot."""

import argparse
import asyncio
import sys
from pathlib import Path

# Añadir el directorio raíz al path
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx

WEBHOOK_PATH = "/telegram/webhook"


def _api_url(bot_token: str, method: str) -> str:
    return f"https://api.telegram.org/bot{bot_token}/{method}"


async def setup_webhook(bot_token: str, webhook_url: str) -> bool:
    """Configura el webhook en Telegram."""
    async with httpx.AsyncClient() as client:
        response = await client.post(
            _api_url(bot_token, "setWebhook"),
            json={"url": webhook_url}
        )
        data = response.json()

    if data.get("ok"):
        print(f"Webhook configurado exitosamente: {webhook_url}")
        return True
    print(f"Error: {data.get('description')}")
    return False


async def get_webhook_info(bot_token: str) -> dict:
    """Obtiene información del webhook actual."""
    async with httpx.AsyncClient() as client:
        response = await client.get(_api_url(bot_token, "getWebhookInfo"))
        return response.json()


async def delete_webhook(bot_token: str) -> bool:
    """Elimina el webhook actual."""
    async with httpx.AsyncClient() as client:
        response = await client.post(_api_url(bot_token, "deleteWebhook"))
        data = response.json()
        return data.get("ok", False)


def build_webhook_url(base_url: str) -> str:
    """Agrega la ruta del webhook si la URL base no la incluye."""
    base_url = base_url.rstrip("/")
    if base_url.endswith(WEBHOOK_PATH):
        return base_url
    return f"{base_url}{WEBHOOK_PATH}"


async def main() -> int:
    from app.config import get_settings

    parser = argparse.ArgumentParser(description="Administra el webhook de Telegram")
    parser.add_argument("action", choices=["info", "set", "delete"])
    parser.add_argument("--url", help="URL pública base (default: TELEGRAM_WEBHOOK_URL)")
    args = parser.parse_args()

    settings = get_settings()
    bot_token = settings.telegram_bot_token

    if not bot_token:
        print("Error: TELEGRAM_BOT_TOKEN no está configurado")
        return 1

    if args.action == "info":
        info = await get_webhook_info(bot_token)
        current_url = info.get("result", {}).get("url") or "No configurado"
        print(f"URL: {current_url}")
        return 0

    if args.action == "delete":
        ok = await delete_webhook(bot_token)
        print("Webhook eliminado" if ok else "No se pudo eliminar el webhook")
        return 0 if ok else 1

    base_url = args.url or settings.telegram_webhook_url
    if not base_url:
        print("Error: usa --url o configura TELEGRAM_WEBHOOK_URL")
        return 1

    ok = await setup_webhook(bot_token, build_webhook_url(base_url))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
