"""Entrypoint: ``python -m chatwarden``.

Runs the Discord client and the health check server on one event loop.
"""

import asyncio
import sys

import discord
import uvicorn

from chatwarden.adapters.discord_adapter import DiscordBotAdapter
from chatwarden.app import app
from chatwarden.config import CONFIG


def _log(msg: str):
    print(msg, file=sys.stderr)


async def run(token: str, port: int) -> None:
    server = uvicorn.Server(uvicorn.Config(app, host="0.0.0.0", port=port, log_level="warning"))
    health_task = asyncio.create_task(server.serve())
    bot = DiscordBotAdapter()
    try:
        async with bot:
            await bot.start(token)
    finally:
        server.should_exit = True
        await health_task


def main() -> int:
    token = CONFIG["discord_token"]
    if not token:
        _log("DISCORD_TOKEN is not set. Copy .env.example to .env and add your token.")
        return 1
    if not CONFIG["groq_api_key"]:
        _log("GROQ_API_KEY is not set; the bot will stay quiet until it is configured.")
    try:
        asyncio.run(run(token, CONFIG["port"]))
    except (discord.LoginFailure, discord.PrivilegedIntentsRequired) as e:
        _log(f"Login failed: {e}")
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
