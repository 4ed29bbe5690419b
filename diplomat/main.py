"""Diplomat server entry point."""

import asyncio
import contextlib
import logging

from aiohttp import web

from diplomat.config import settings
from diplomat.delivery.hub import SessionHub
from diplomat.llm.client import AnthropicGenerator
from diplomat.mediator.engine import InterventionEngine
from diplomat.mediator.prompt import PromptBuilder, PromptTemplates
from diplomat.storage.conversations import ConversationStore
from diplomat.storage.ground_rules import GroundRulesStore
from diplomat.web.server import DiplomatServer, create_web_app

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def build_app() -> web.Application:
    """Wire stores, delivery hub and engine into the web application."""
    templates = PromptTemplates.load(settings.config_dir)
    store = ConversationStore()
    ground_rules = GroundRulesStore(template=templates.ground_rules)
    hub = SessionHub()
    engine = InterventionEngine(
        store,
        AnthropicGenerator(),
        hub,
        prompts=PromptBuilder(templates),
    )
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty, every mediator call will fail")
    limit = settings.get_analysis_limit()
    logger.info(
        "Context window %d messages, concurrent analyses %s",
        settings.context_window_size,
        limit or "unbounded",
    )
    return create_web_app(store, ground_rules, hub, engine)


async def _serve() -> None:
    server = DiplomatServer(build_app())
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Start the Diplomat server."""
    logger.info("Starting Diplomat on %s:%d...", settings.web_host, settings.web_port)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_serve())


if __name__ == "__main__":
    main()
