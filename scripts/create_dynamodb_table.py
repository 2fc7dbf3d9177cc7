"""Create the DynamoDB table for device control state logging.

Run once to set up the table:
    uv run python scripts/create_dynamodb_table.py

Table name, region and profile come from the controls config, so the table
matches what the server writes to when DEVICE_CONTROLS_STATE_LOG is on.
"""

import logging
import sys

from devicecontrols.controls.config import load_config
from devicecontrols.logging import create_state_log_table


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
    config = load_config()

    if create_state_log_table(config):
        print(f"Table '{config.state_log_table}' is ready in {config.aws_region}.")
    else:
        print(f"Table '{config.state_log_table}' already exists in {config.aws_region}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
