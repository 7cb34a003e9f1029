"""
Run script for starting the storefront voice relay.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL] [--reload]
"""

import argparse
import os
import sys

import uvicorn

from voice_relay.config.logging_config import configure_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the storefront voice relay"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    args = parse_args()
    # voice_relay.main configures logging again from LOG_LEVEL when uvicorn imports it
    os.environ["LOG_LEVEL"] = args.log_level
    logger = configure_logging(args.log_level)

    missing = [
        name
        for name in ("OPENAI_API_KEY", "DEEPGRAM_API_KEY", "ELEVENLABS_API_KEY")
        if not os.getenv(name)
    ]
    if missing:
        # The relay still starts; affected features report errors per session
        logger.warning(f"Provider keys not set: {', '.join(missing)}")

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")

    uvicorn.run(
        "voice_relay.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        access_log=False,
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
