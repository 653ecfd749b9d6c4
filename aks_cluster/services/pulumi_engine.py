# aks_cluster/services/pulumi_engine.py
from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from pulumi import automation as auto
from ..models import ClusterConfig, EngineSettings
from ..observability.logging import get_logger
from .program_builder import build_pulumi_program
from .topology import build_cluster_graph
from .validator import TopologyValidator

log = get_logger("pulumi_engine")

REDACTED = "[secret]"


class DeploymentError(RuntimeError):
    """Raised when the Pulumi engine reports a failed operation."""


def init_pulumi_env(settings: EngineSettings) -> None:
    """
    Compute a local file backend + pulumi home from settings and apply them
    to the current process so /health can display them before any preview/up.
    """
    os.environ.update(_ensure_pulumi_env(settings))


def _ensure_pulumi_env(settings: EngineSettings) -> Dict[str, str]:
    env: Dict[str, str] = {}
    env["PULUMI_SECRETS_PROVIDER"] = os.environ.get("PULUMI_SECRETS_PROVIDER", settings.secrets_provider)
    env["PULUMI_CONFIG_PASSPHRASE"] = os.environ.get(
        "PULUMI_CONFIG_PASSPHRASE", settings.config_passphrase.get_secret_value()
    )

    state_dir = Path(settings.state_dir).resolve()
    state_dir.mkdir(parents=True, exist_ok=True)
    env["PULUMI_BACKEND_URL"] = "file://" + state_dir.as_posix()

    pulumi_home = Path(settings.pulumi_home).resolve() if settings.pulumi_home else Path.home() / ".pulumi"
    pulumi_home.mkdir(parents=True, exist_ok=True)
    env["PULUMI_HOME"] = str(pulumi_home)

    log.debug("pulumi_env", backend=env["PULUMI_BACKEND_URL"], pulumi_home=env["PULUMI_HOME"])
    return env


def _get_work_dir(settings: EngineSettings) -> Path:
    work_dir = Path(settings.work_dir).resolve()
    work_dir.mkdir(parents=True, exist_ok=True)
    return work_dir


def _stack(settings: EngineSettings, stack_name: str, program):
    pulumi_env = _ensure_pulumi_env(settings)
    os.environ.update(pulumi_env)  # make sure the CLI child sees our env

    stack = auto.create_or_select_stack(
        stack_name=stack_name,
        project_name=settings.project_name,
        program=program,
        work_dir=str(_get_work_dir(settings)),
    )
    if settings.location:
        stack.set_config("azure-native:location", auto.ConfigValue(value=settings.location))
    return stack


def _select_stack(settings: EngineSettings, stack_name: str):
    """Select an existing stack; unlike _stack, never creates one."""
    os.environ.update(_ensure_pulumi_env(settings))
    return auto.select_stack(
        stack_name=stack_name,
        project_name=settings.project_name,
        program=lambda: None,
        work_dir=str(_get_work_dir(settings)),
    )


def _unwrap_outputs(outputs: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Plain output values; secret outputs (kubeconfigs) are never returned in plaintext."""
    result = {}
    for key, output in (outputs or {}).items():
        if getattr(output, "secret", False):
            result[key] = REDACTED
        else:
            result[key] = getattr(output, "value", output)
    return result


def _duration_sec(summary) -> Optional[float]:
    # SDK versions differ on how duration is reported
    dur = getattr(summary, "duration", None)
    if hasattr(dur, "total_seconds"):
        return dur.total_seconds()
    if isinstance(dur, (int, float)):
        return dur
    return None


class PulumiEngine:
    @staticmethod
    def validate(config: ClusterConfig) -> Dict[str, Any]:
        return TopologyValidator.validate(build_cluster_graph(config))

    @staticmethod
    def preview(
        config: ClusterConfig,
        settings: EngineSettings,
        stack_name: Optional[str] = None,
        on_output: Callable[[str], None] = print,
    ) -> Dict[str, Any]:
        validation = TopologyValidator.ensure_valid(build_cluster_graph(config))
        stack_name = stack_name or settings.stack_name
        log.info("preview_started", stack=stack_name)

        stack = _stack(settings, stack_name, build_pulumi_program(config))
        try:
            res = stack.preview(on_output=on_output)
        except auto.CommandError as e:
            log.error("preview_failed", stack=stack_name, error=str(e))
            raise DeploymentError(f"Preview failed: {e}") from e

        return {
            "preview": True,
            "stack": stack_name,
            "changeSummary": res.change_summary,
            "validation": validation,
        }

    @staticmethod
    def up(
        config: ClusterConfig,
        settings: EngineSettings,
        stack_name: Optional[str] = None,
        on_output: Callable[[str], None] = print,
    ) -> Dict[str, Any]:
        validation = TopologyValidator.ensure_valid(build_cluster_graph(config))
        stack_name = stack_name or settings.stack_name
        log.info("up_started", stack=stack_name)

        stack = _stack(settings, stack_name, build_pulumi_program(config))
        try:
            up_res = stack.up(on_output=on_output)
        except auto.CommandError as e:
            log.error("up_failed", stack=stack_name, error=str(e))
            raise DeploymentError(f"Deployment failed: {e}") from e

        summary = up_res.summary
        log.info("up_finished", stack=stack_name, result=getattr(summary, "result", None))
        return {
            "preview": False,
            "stack": stack_name,
            "outputs": _unwrap_outputs(up_res.outputs),
            "summary": {
                "resources": getattr(summary, "resource_changes", None),
                "duration_sec": _duration_sec(summary),
            },
            "validation": validation,
        }

    @staticmethod
    def outputs(settings: EngineSettings, stack_name: Optional[str] = None) -> Dict[str, Any]:
        stack_name = stack_name or settings.stack_name
        try:
            outputs = _select_stack(settings, stack_name).outputs()
        except auto.StackNotFoundError as e:
            raise DeploymentError(f"Stack '{stack_name}' does not exist") from e
        except auto.CommandError as e:
            raise DeploymentError(f"Reading outputs failed: {e}") from e
        return {"stack": stack_name, "outputs": _unwrap_outputs(outputs)}

    @staticmethod
    def destroy(
        settings: EngineSettings,
        stack_name: Optional[str] = None,
        on_output: Callable[[str], None] = print,
    ) -> Dict[str, Any]:
        stack_name = stack_name or settings.stack_name
        log.info("destroy_started", stack=stack_name)

        stack = _stack(settings, stack_name, lambda: None)
        try:
            res = stack.destroy(on_output=on_output)
        except auto.CommandError as e:
            log.error("destroy_failed", stack=stack_name, error=str(e))
            raise DeploymentError(f"Destroy failed: {e}") from e

        deleted_count = 0
        resource_changes = getattr(res.summary, "resource_changes", None) or {}
        if isinstance(resource_changes, dict):
            deleted_count = resource_changes.get("delete", 0)

        stack.workspace.remove_stack(stack.name)
        log.info("destroy_finished", stack=stack_name, deleted=deleted_count)
        return {
            "destroyed": True,
            "stack": stack_name,
            "resources_deleted": deleted_count,
        }
