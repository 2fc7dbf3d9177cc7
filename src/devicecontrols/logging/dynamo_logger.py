"""DynamoDB state logger for device control actions."""

import logging
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from devicecontrols.controls.config import DEFAULT_REGION, DEFAULT_TABLE_NAME, ControlsConfig

logger = logging.getLogger(__name__)

TTL_DAYS = 30

KEY_SCHEMA = [
    {"AttributeName": "device_id", "KeyType": "HASH"},
    {"AttributeName": "timestamp", "KeyType": "RANGE"},
]
ATTRIBUTE_DEFINITIONS = [
    {"AttributeName": "device_id", "AttributeType": "S"},
    {"AttributeName": "timestamp", "AttributeType": "S"},
]


def _to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats; store numbers as Decimal."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return value


class DynamoStateLogger:
    """Fire-and-forget logger that writes device state changes to DynamoDB.

    Lazy-initializes the boto3 Table resource on first write.
    After any connection/table failure, sets ``_disabled`` to avoid retrying.
    """

    def __init__(
        self,
        profile_name: Optional[str] = None,
        table_name: Optional[str] = None,
        region: Optional[str] = None,
    ) -> None:
        self._profile_name = profile_name
        self._table_name = table_name
        self._region = region
        self._table = None
        self._disabled = False

    @classmethod
    def from_config(cls, config) -> "DynamoStateLogger":
        return cls(
            profile_name=config.aws_profile,
            table_name=config.state_log_table,
            region=config.aws_region,
        )

    def _get_table(self):
        """Lazily create and return the DynamoDB Table resource."""
        if self._table is not None:
            return self._table

        table_name = self._table_name or os.environ.get("DYNAMODB_TABLE_NAME", DEFAULT_TABLE_NAME)
        region = self._region or os.environ.get("AWS_DEFAULT_REGION", DEFAULT_REGION)

        session_kwargs = {"region_name": region}
        if self._profile_name:
            session_kwargs["profile_name"] = self._profile_name

        session = boto3.Session(**session_kwargs)
        dynamodb = session.resource("dynamodb")
        self._table = dynamodb.Table(table_name)
        return self._table

    async def log_state_change(
        self, device_id: str, action: str, result: dict[str, Any]
    ) -> None:
        """Log a device state change to DynamoDB.

        This is fire-and-forget: failures are logged as warnings and never
        propagate to the caller.

        Args:
            device_id: Identifier for the device (e.g. ``dimmable-bulb``).
            action: The action performed (``trigger``, ``set_switch``, ``set_level``).
            result: The result dict returned by ``perform_action``, expected to
                contain ``success`` (bool), ``response`` (str) and ``state``
                (tagged state dict such as ``{"type": "range", "level": 55.0, "on": True}``).
        """
        if self._disabled:
            return

        try:
            table = self._get_table()

            now = datetime.now(timezone.utc)
            state = result.get("state", {})

            item = {
                "device_id": device_id,
                "timestamp": now.isoformat(timespec="microseconds"),
                "action": action,
                "success": result.get("success", False),
                "response": result.get("response", ""),
                "state_type": state.get("type", "unknown"),
                "ttl": int((now + timedelta(days=TTL_DAYS)).timestamp()),
            }
            for key, value in state.items():
                if key != "type":
                    item[f"state_{key}"] = _to_dynamo(value)

            table.put_item(Item=item)
        except (BotoCoreError, ClientError, Exception) as exc:
            logger.warning("DynamoDB logging failed, disabling logger: %s", exc)
            self._disabled = True


def create_state_log_table(config: ControlsConfig) -> bool:
    """Create the state log table described by ``config`` and enable TTL on it.

    Returns:
        True if the table was created, False if it already existed

    Raises:
        ClientError: For any AWS error other than the table already existing
    """
    session_kwargs = {"region_name": config.aws_region}
    if config.aws_profile:
        session_kwargs["profile_name"] = config.aws_profile
    client = boto3.Session(**session_kwargs).client("dynamodb")
    table_name = config.state_log_table

    try:
        client.create_table(
            TableName=table_name,
            KeySchema=KEY_SCHEMA,
            AttributeDefinitions=ATTRIBUTE_DEFINITIONS,
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            logger.info("Table %s already exists", table_name)
            return False
        raise

    logger.info("Table %s created, waiting for it to become active", table_name)
    client.get_waiter("table_exists").wait(TableName=table_name)
    client.update_time_to_live(
        TableName=table_name,
        TimeToLiveSpecification={"Enabled": True, "AttributeName": "ttl"},
    )
    logger.info("TTL enabled on %s", table_name)
    return True
