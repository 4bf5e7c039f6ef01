import asyncio
from types import SimpleNamespace

from telegram.constants import ParseMode
from telegram.error import Forbidden

from expense_bot.telegram_gateway import BOT_COMMANDS, TelegramGateway


class StubBot:
    """Matches the ``telegram.Bot`` coroutines the gateway calls."""

    def __init__(self, send_error=None):
        self.calls = []
        self._send_error = send_error

    async def send_message(self, **kwargs):
        self.calls.append(("send_message", kwargs))
        if self._send_error:
            raise self._send_error

    async def get_file(self, file_id):
        self.calls.append(("get_file", file_id))

        async def download_as_bytearray():
            return bytearray(b"photo")

        return SimpleNamespace(download_as_bytearray=download_as_bytearray)

    async def set_webhook(self, **kwargs):
        self.calls.append(("set_webhook", kwargs))

    async def set_my_commands(self, commands):
        self.calls.append(("set_my_commands", commands))


def test_send_uses_html():
    bot = StubBot()
    result = asyncio.run(TelegramGateway(bot).send("111", "<b>hi</b>"))
    assert result.ok
    assert bot.calls == [("send_message", {"chat_id": "111", "text": "<b>hi</b>", "parse_mode": ParseMode.HTML})]


def test_send_failure_is_returned_not_raised():
    result = asyncio.run(TelegramGateway(StubBot(send_error=Forbidden("bot was blocked by the user"))).send("111", "x"))
    assert not result.ok
    assert "blocked" in result.error


def test_download_file_returns_bytes():
    bot = StubBot()
    assert asyncio.run(TelegramGateway(bot).download_file("large")) == b"photo"
    assert bot.calls == [("get_file", "large")]


def test_register_sets_webhook_and_commands():
    bot = StubBot()
    asyncio.run(TelegramGateway(bot).register("https://bot.example/webhook"))

    (name, kwargs), (_, commands) = bot.calls
    assert name == "set_webhook"
    assert kwargs["url"] == "https://bot.example/webhook"
    assert [c.command for c in commands] == [name for name, _ in BOT_COMMANDS]
