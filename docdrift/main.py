"""Application entry point"""
import sys
import asyncio
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

from docdrift.config import Settings, settings
from docdrift.services.api_client import APIClient
from docdrift.services.auth import StaticSessionProvider
from docdrift.session.controller import SessionController


def setup_logging(config: Settings):
    """Log to stdout and a rotating file"""
    logs_dir = Path(config.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / "docdrift.log"

    handlers = [
        logging.StreamHandler(sys.stdout),
        RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ]

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Suppress verbose transport logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("=== STARTING docdrift ===")
    logger.info(f"Logs are written to: {log_file}")


def build_session(config: Settings) -> SessionController:
    api_client = APIClient(
        base_url=config.api_base_url,
        session_provider=StaticSessionProvider(config.user_id, config.access_token),
        timeout=config.request_timeout,
        connect_timeout=config.connect_timeout,
    )
    return SessionController(api_client, config)


async def run(config: Settings, ready_timeout: float = 120.0) -> int:
    """Wait for the backend, load conversations and log a summary"""
    logger = logging.getLogger(__name__)

    async with build_session(config) as session:
        if not await session.wait_until_ready(ready_timeout):
            state = session.readiness.state
            logger.error(
                f"Backend not reachable after {state.retry_count} attempts: {state.last_error}"
            )
            return 1

        await session.drain()
        selected = session.state.selected_conversation
        if selected is not None:
            logger.info(f"Selected conversation: {selected.title}")
        for conversation in session.state.conversations:
            marker = "*" if conversation.id == session.state.selected_conversation_id else " "
            logger.info(f"{marker} {conversation.id}  {conversation.title}")
        logger.info(
            f"{len(session.state.conversations)} conversations, "
            f"{len(session.state.messages)} messages and "
            f"{len(session.state.documents)} documents in the selected one"
        )
    return 0


def main():
    """Headless entry point"""
    setup_logging(settings)
    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
