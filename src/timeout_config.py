"""
Centralized timeout configuration for provisioner operations.

Observed-state queries and Terraform invocations can hang indefinitely when a
backend misbehaves, so every one of them is bounded by a value from here.

Usage:
    from src.timeout_config import Timeouts

    subprocess.run(cmd, timeout=Timeouts.TERRAFORM_INIT)

Environment Variables:
    - VNET_VALIDATOR_TIMEOUT_OUTPUT_QUERY: Single observed-state lookup (default: 30s)
    - VNET_VALIDATOR_TIMEOUT_TERRAFORM_INIT: terraform init (default: 120s)
    - VNET_VALIDATOR_TIMEOUT_TERRAFORM_APPLY: terraform apply (default: 1800s)
    - VNET_VALIDATOR_TIMEOUT_TERRAFORM_OUTPUT: terraform output (default: 60s)
"""

import logging
import os
from typing import Final, Sequence, Union

logger = logging.getLogger(__name__)

ENV_PREFIX = "VNET_VALIDATOR_TIMEOUT_"


def _get_timeout(name: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        name: Timeout name, appended to ENV_PREFIX
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    env_var = f"{ENV_PREFIX}{name}"
    value = os.environ.get(env_var)
    if value is None:
        return default
    try:
        timeout = int(value)
    except ValueError:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be integer. Using default: {default}s"
        )
        return default
    if timeout <= 0:
        logger.warning(
            f"Invalid timeout value for {env_var}: {value}. "
            f"Must be positive. Using default: {default}s"
        )
        return default
    return timeout


class Timeouts:
    """Timeout constants in seconds, read once at import time."""

    OUTPUT_QUERY: Final[int] = _get_timeout("OUTPUT_QUERY", 30)

    TERRAFORM_INIT: Final[int] = _get_timeout("TERRAFORM_INIT", 120)
    TERRAFORM_APPLY: Final[int] = _get_timeout("TERRAFORM_APPLY", 1800)
    TERRAFORM_OUTPUT: Final[int] = _get_timeout("TERRAFORM_OUTPUT", 60)


def log_timeout_event(
    operation: str,
    timeout_value: float,
    command: Union[str, Sequence[str], None] = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        command: Optional command or output key that timed out
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    cmd_str = ""
    if command:
        cmd_str = command if isinstance(command, str) else " ".join(command)
        if len(cmd_str) > 100:
            cmd_str = cmd_str[:97] + "..."
        cmd_str = f" - command: '{cmd_str}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{cmd_str}"
    )
