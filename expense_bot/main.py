import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from telegram import Bot

from expense_bot.categorizer import ExpenseCategorizer
from expense_bot.config import Settings
from expense_bot.dispatcher import WebhookDispatcher
from expense_bot.ledger import LedgerStore
from expense_bot.receipts import ReceiptExtractor
from expense_bot.sheets_client import SheetsClient
from expense_bot.storage import build_storage
from expense_bot.telegram_gateway import TelegramGateway
from expense_bot.ytd import YTDAggregator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"


def build_dispatcher(settings: Settings, bot: Bot) -> WebhookDispatcher:
    ledger = LedgerStore(SheetsClient(settings), settings)
    return WebhookDispatcher(
        settings,
        gateway=TelegramGateway(bot),
        categorizer=ExpenseCategorizer(settings),
        extractor=ReceiptExtractor(settings, build_storage(settings)),
        ledger=ledger,
        aggregator=YTDAggregator(ledger, settings.standard_deduction),
    )


def create_app(settings: Settings | None = None, dispatcher: WebhookDispatcher | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        bot = None
        if app.state.dispatcher is None:
            bot = Bot(settings.telegram_token)
            await bot.initialize()
            app.state.dispatcher = build_dispatcher(settings, bot)
            if settings.public_webhook_url:
                await app.state.dispatcher.gateway.register(settings.public_webhook_url)
            logger.info(f"Expense bot ready ({len(settings.authorized_chats)} authorized chats)")
        yield
        if bot is not None:
            await bot.shutdown()

    app = FastAPI(title="S-Corp Expense Bot", version="1.0.0", lifespan=lifespan)
    app.state.dispatcher = dispatcher
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    @app.get(WEBHOOK_PATH)
    def health():
        return {
            "status": "S-Corp Expense Tracker is running! 🚀",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "envCheck": settings.env_check(),
        }

    @app.options(WEBHOOK_PATH)
    def preflight():
        return Response(status_code=200)

    @app.post(WEBHOOK_PATH)
    async def webhook(request: Request):
        try:
            payload = await request.json()
            status = await app.state.dispatcher.dispatch(payload)
        except Exception as e:
            logger.exception("Webhook error")
            return JSONResponse(status_code=500, content={"error": str(e)})
        return {"status": status}

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Routing errors (405 on /webhook, 404 elsewhere) use the same body shape as the 500
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    return app
