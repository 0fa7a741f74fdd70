"""Observed state lookups against a provisioner's outputs."""

import concurrent.futures
import re
import threading
from typing import Any, List, Optional, Protocol, Tuple

import structlog

from src.config.models import KeyStyle, ValidatorConfig
from src.exceptions import ProviderError, ProviderTimeoutError
from src.timeout_config import log_timeout_event
from src.topology.models import EntityKind, EntityPath
from src.topology.schema import KIND_SCHEMAS

from .base import Provisioner, format_output_key

logger = structlog.get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ObservedStateAccessor(Protocol):
    """Answers "what value does the deployment report for this attribute?"."""

    def lookup(self, path: EntityPath, attribute: str) -> Tuple[Any, bool]: ...


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class OutputStateAccessor:
    """Map entity paths onto provisioner output keys.

    The key for ``vnet1/subnet1`` attribute ``addressPrefixes`` is
    ``[output_root] vnet1 subnetworks subnet1 addressPrefixes``, with container
    and attribute names converted to the configured key style.

    Each lookup is bounded by ``config.lookup_timeout_seconds``. A timed lookup
    runs on its own daemon thread, so a call that never returns neither holds
    up later lookups nor keeps the interpreter alive at exit.
    """

    def __init__(self, provisioner: Provisioner, config: Optional[ValidatorConfig] = None):
        self.provisioner = provisioner
        self.config = config or ValidatorConfig()
        self._abandoned: List[threading.Thread] = []
        self._lock = threading.Lock()

    def __enter__(self) -> "OutputStateAccessor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Forget timed-out lookups, logging any that are still running."""
        with self._lock:
            still_running = [thread for thread in self._abandoned if thread.is_alive()]
            self._abandoned = []
        if still_running:
            logger.warning(
                "Abandoning observed state lookups that did not return",
                count=len(still_running),
            )

    def key_name(self, name: str) -> str:
        """Output key used for a declared attribute or container name."""
        if name in self.config.attribute_aliases:
            return self.config.attribute_aliases[name]
        if self.config.key_style is KeyStyle.SNAKE:
            return to_snake_case(name)
        return name

    def output_key(self, path: EntityPath, attribute: str) -> Tuple[str, ...]:
        segments = []
        if self.config.output_root:
            segments.append(self.config.output_root)

        kind: Optional[EntityKind] = EntityKind.NETWORK
        for depth, key in enumerate(path):
            if depth > 0:
                schema = KIND_SCHEMAS[kind] if kind is not None else None
                if schema is None or schema.children_field is None:
                    raise ValueError(f"Path {path} is deeper than the topology schema")
                segments.append(self.key_name(schema.children_field))
                kind = schema.child_kind
            segments.append(key)

        segments.append(self.key_name(attribute))
        return tuple(segments)

    def lookup(self, path: EntityPath, attribute: str) -> Tuple[Any, bool]:
        """Return ``(value, found)`` for an attribute of the entity at ``path``.

        Raises:
            ProviderError: If the provisioner fails
            ProviderTimeoutError: If the lookup exceeds its timeout
        """
        key = self.output_key(path, attribute)
        timeout = self.config.lookup_timeout_seconds
        try:
            if timeout is None:
                return self.provisioner.output(key)
            future, thread = self._start_lookup(key)
            try:
                return future.result(timeout=timeout)
            except concurrent.futures.TimeoutError as e:
                with self._lock:
                    self._abandoned.append(thread)
                log_timeout_event("output_query", timeout, format_output_key(key))
                raise ProviderTimeoutError(
                    "Observed state lookup timed out",
                    key=format_output_key(key),
                    timeout=timeout,
                ) from e
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Observed state lookup failed: {e}",
                key=format_output_key(key),
                cause=e,
            ) from e

    def _start_lookup(
        self, key: Tuple[str, ...]
    ) -> Tuple[concurrent.futures.Future, threading.Thread]:
        future: concurrent.futures.Future = concurrent.futures.Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.provisioner.output(key))
            except BaseException as e:
                future.set_exception(e)

        thread = threading.Thread(
            target=run, name=f"observed-lookup:{format_output_key(key)}", daemon=True
        )
        thread.start()
        return future, thread
