"""Terraform-backed provisioner.

Writes the topology as a tfvars file, applies the configuration in
``working_dir`` and serves ``terraform output -json`` as observed state.
Teardown is left to the caller.
"""

import json
import subprocess
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from src.exceptions import ProviderError, ProviderTimeoutError
from src.timeout_config import Timeouts, log_timeout_event
from src.topology.models import Topology
from src.topology.serializer import serialize_topology

from .base import OutputKey, resolve_output_path

logger = structlog.get_logger(__name__)

TFVARS_FILE = "terraform.tfvars.json"


class TerraformProvisioner:
    """Deploy topologies with the Terraform CLI.

    Args:
        working_dir: Directory containing the Terraform configuration
        variable_name: Input variable that receives the topology declaration
        terraform_bin: Terraform executable
    """

    def __init__(
        self,
        working_dir: Union[str, Path],
        variable_name: str = "networks",
        terraform_bin: str = "terraform",
    ):
        self.working_dir = Path(working_dir)
        self.variable_name = variable_name
        self.terraform_bin = terraform_bin
        self._outputs: Optional[Dict[str, Any]] = None
        self._outputs_lock = threading.Lock()

    def deploy(self, topology: Topology) -> None:
        """Write the tfvars file, then run terraform init and apply.

        Raises:
            ProviderError: If a terraform command fails
            ProviderTimeoutError: If a terraform command times out
        """
        tfvars_path = self.working_dir / TFVARS_FILE
        tfvars = {self.variable_name: serialize_topology(topology)}
        tfvars_path.write_text(json.dumps(tfvars, indent=2, sort_keys=True))
        logger.info(
            "Deploying topology with Terraform",
            working_dir=str(self.working_dir),
            networks=len(topology),
        )

        self._run(["init", "-input=false"], "terraform_init", Timeouts.TERRAFORM_INIT)
        self._run(
            ["apply", "-auto-approve", "-input=false"],
            "terraform_apply",
            Timeouts.TERRAFORM_APPLY,
        )
        self.refresh()
        logger.info("Terraform apply completed", working_dir=str(self.working_dir))

    def output(self, key: OutputKey) -> Tuple[Any, bool]:
        return resolve_output_path(self._load_outputs(), key)

    def refresh(self) -> None:
        """Forget cached outputs so the next lookup queries Terraform again."""
        with self._outputs_lock:
            self._outputs = None

    def _load_outputs(self) -> Dict[str, Any]:
        # Concurrent first lookups share a single terraform output call
        with self._outputs_lock:
            if self._outputs is None:
                result = self._run(
                    ["output", "-json"], "terraform_output", Timeouts.TERRAFORM_OUTPUT
                )
                try:
                    raw = json.loads(result.stdout or "{}")
                except json.JSONDecodeError as e:
                    raise ProviderError(
                        f"terraform output returned invalid JSON: {e}", cause=e
                    ) from e
                # Each output is wrapped as {"sensitive": ..., "type": ..., "value": ...}
                self._outputs = {
                    name: entry.get("value") if isinstance(entry, dict) else entry
                    for name, entry in raw.items()
                }
                logger.debug("Loaded terraform outputs", outputs=sorted(self._outputs))
            return self._outputs

    def _run(
        self, args: List[str], operation: str, timeout: int
    ) -> subprocess.CompletedProcess:
        command = [self.terraform_bin, *args]
        try:
            result = subprocess.run(
                command,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            log_timeout_event(operation, timeout, command)
            raise ProviderTimeoutError(
                f"{' '.join(command)} timed out",
                timeout=timeout,
                context={"command": " ".join(command)},
                cause=e,
            ) from e
        except OSError as e:
            raise ProviderError(
                f"Cannot run {self.terraform_bin}: {e}",
                cause=e,
                recovery_suggestion="Install Terraform and make sure it is on PATH",
            ) from e

        if result.returncode != 0:
            raise ProviderError(
                f"{' '.join(command)} failed: {result.stderr.strip()}",
                context={"returncode": result.returncode},
            )
        return result
