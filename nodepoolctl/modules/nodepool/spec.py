"""User-facing node pool settings.

Settings can come from command line options, an API request or a YAML file
such as::

    node_pool_name: pool-a
    min_ready_nodes: 2
    ready_timeout: 10m
    drain_timeout: 300s
    drain_wait: 60s
"""
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from jsonschema import ValidationError, validate
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ...config import Config
from ...utils.duration import validate_duration
from .errors import ConfigurationError
from .models import DrainPlan, NodePoolTarget, ReadinessRequirement

logger = logging.getLogger(__name__)

NODE_POOL_SCHEMA = {
    "type": "object",
    "properties": {
        "node_pool_name": {"type": "string", "minLength": 1},
        "node_selector_key": {"type": "string", "minLength": 1},
        "node_selector_value": {"type": "string", "minLength": 1},
        "min_ready_nodes": {"type": "integer", "minimum": 1},
        "ready_timeout": {"type": "string"},
        "drain_timeout": {"type": "string"},
        "drain_wait": {"type": "string"},
    },
    "required": ["node_pool_name"],
    "additionalProperties": False,
}


class NodePoolSpec(BaseModel):
    """Settings of a managed node pool."""
    node_pool_name: str = Field(..., min_length=1, description="Node pool name")
    node_selector_key: str = Field(
        default_factory=lambda: Config.SELECTOR_KEY,
        min_length=1,
        description="Label key used to select the nodes of the pool",
    )
    node_selector_value: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Label value used to select the nodes of the pool, defaults to the pool name",
    )
    min_ready_nodes: int = Field(
        default_factory=lambda: Config.MIN_READY_NODES,
        ge=1,
        description="Minimum number of ready nodes in the new node pool",
    )
    ready_timeout: str = Field(
        default_factory=lambda: Config.READY_TIMEOUT,
        description="Maximum time for waiting for the nodes of a new pool to be ready",
    )
    drain_timeout: str = Field(
        default_factory=lambda: Config.DRAIN_TIMEOUT,
        description="Timeout for each node drain",
    )
    drain_wait: str = Field(
        default_factory=lambda: Config.DRAIN_WAIT,
        description="Time to wait after each node drain",
    )

    @field_validator("ready_timeout", "drain_timeout", "drain_wait")
    @classmethod
    def check_duration(cls, v: str, info) -> str:
        """Durations must parse and be non-negative."""
        validate_duration(v, name=info.field_name, min_seconds=0)
        return v

    @property
    def selector_value(self) -> str:
        return self.node_selector_value or self.node_pool_name

    def target(self) -> NodePoolTarget:
        return NodePoolTarget(
            name=self.node_pool_name,
            selector_key=self.node_selector_key,
            selector_value=self.node_selector_value,
        )

    def readiness_requirement(self) -> ReadinessRequirement:
        return ReadinessRequirement(
            min_ready_nodes=self.min_ready_nodes,
            timeout=validate_duration(self.ready_timeout, name="ready_timeout", min_seconds=0),
        )

    def drain_plan(self) -> DrainPlan:
        return DrainPlan(
            drain_timeout=validate_duration(self.drain_timeout, name="drain_timeout", min_seconds=0),
            inter_node_pause=validate_duration(self.drain_wait, name="drain_wait", min_seconds=0),
        )

    def to_state(self) -> Dict[str, Any]:
        """Settings as persisted in the registry, with defaults resolved."""
        state = self.model_dump()
        state["node_selector_value"] = self.selector_value
        return state


def load_spec_file(path: Union[str, Path], **overrides: Any) -> NodePoolSpec:
    """Load node pool settings from a YAML file.

    Keyword overrides that are not None replace the values from the file.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML or does
            not match the node pool schema
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigurationError(f"Node pool file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Node pool file {path} must contain a mapping")

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        validate(instance=data, schema=NODE_POOL_SCHEMA)
    except ValidationError as e:
        raise ConfigurationError(f"Schema validation error in {path}: {e.message}")

    logger.debug("loaded node pool %s from %s", data.get("node_pool_name"), path)
    return build_spec(**data)


def build_spec(**values: Any) -> NodePoolSpec:
    """Build a NodePoolSpec, dropping unset values so defaults apply.

    Raises:
        ConfigurationError: If a value is invalid
    """
    try:
        return NodePoolSpec(**{k: v for k, v in values.items() if v is not None})
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid node pool settings: {details}")
