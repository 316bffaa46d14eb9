"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .tools.calls import calls_server, close_pipeline
from .tools.infra import infra_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — enables tracing and closes provider clients."""
    tracing.setup()
    yield {}
    closed = await close_pipeline()
    tracing.shutdown()
    logger.info("Lifespan shutdown: pipeline closed=%s", closed)


app = FastMCP(
    "call-intelligence",
    instructions=(
        "Sales call intelligence — analyze call transcripts for sentiment, "
        "buying signals, objections and conversion likelihood, follow the lead's "
        "sentiment through the call, and recommend ranked next actions. "
        "Uses OpenAI, Gemini and Anthropic with fallback."
    ),
    lifespan=_lifespan,
)

app.mount(calls_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``call-intelligence-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
