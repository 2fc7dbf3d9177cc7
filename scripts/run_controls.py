"""Entry point to start the device controls MCP server.

Usage:
    uv run python scripts/run_controls.py                        # Defaults from config
    uv run python scripts/run_controls.py --level-policy reject  # Reject out-of-range levels

The server registers the demo devices (simple-button, toggle-button,
dimmable-bulb) and serves the control tools over stdio.
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from devicecontrols.controls.config import LevelPolicy, load_config
from devicecontrols.devices.demo import build_demo_service
from devicecontrols.logging import DynamoStateLogger
from devicecontrols.mcp_servers import controls_server

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ENV_FILE = Path.home() / ".devicecontrols" / ".env"


def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    try:
        config = load_config(args.config)
        if args.level_policy:
            config.level_policy = args.level_policy
        config.validate()
    except (ValueError, OSError) as e:
        logger.error(str(e))
        return 1

    controls_server.service = build_demo_service(config)
    if config.state_log_enabled:
        controls_server.state_logger = DynamoStateLogger.from_config(config)

    logger.info(f"Serving {len(controls_server.service.registry)} controls "
                f"(level policy: {config.level_policy})")
    controls_server.app.run()
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the device controls MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: ~/.devicecontrols/config.json)",
    )
    parser.add_argument(
        "--level-policy",
        choices=[p.value for p in LevelPolicy],
        default=None,
        help="Clamp or reject brightness levels outside 0-100",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(main(args))
