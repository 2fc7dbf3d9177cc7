"""State change logging backends."""

from devicecontrols.logging.dynamo_logger import DynamoStateLogger, create_state_log_table

__all__ = ["DynamoStateLogger", "create_state_log_table"]
