"""Entry point: ``python -m expense_bot`` serves the webhook with uvicorn."""

import uvicorn

from expense_bot.config import Settings
from expense_bot.main import create_app


def main():
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
