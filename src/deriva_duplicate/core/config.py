"""Configuration management for deriva_duplicate.

This module provides the DuplicatorConfig class describing where duplication runs
(server, catalog, schema) and what it copies (a built-in plan or a plan file). It
integrates with hydra-zen so that configurations can be composed and overridden
from the command line.

Example:
    Programmatic configuration:
        >>> config = DuplicatorConfig(
        ...     hostname="deriva.example.org",
        ...     catalog_id=1,
        ...     schema_name="sales",
        ...     plan_file="plans/opportunity.yaml",
        ... )
        >>> plan = config.load_plan()

    With hydra-zen:
        >>> from hydra_zen import builds, instantiate
        >>> DuplicatorConf = builds(DuplicatorConfig, populate_full_signature=True)
        >>> config = instantiate(DuplicatorConf(hostname="dev.example.org", schema_name="sales"))
"""

import logging
from pathlib import Path
from typing import Any

from hydra.conf import HydraConf, RunDir
from hydra_zen import builds, store
from omegaconf import OmegaConf
from pydantic import BaseModel, ValidationError

from deriva_duplicate.core.constants import RECORD_NOT_FOUND_CODE
from deriva_duplicate.core.exceptions import PlanConfigurationError
from deriva_duplicate.policy.specs import DuplicationPlan


class DuplicatorConfig(BaseModel):
    """Configuration model for duplication runs.

    Attributes:
        hostname: Hostname of the Deriva server.
        catalog_id: Catalog identifier, either numeric ID or catalog name.
        schema_name: Schema holding the record tables.
        plan: Name of a built-in plan. Ignored when ``plan_file`` is set. One of the
            two must be given.
        plan_file: YAML or JSON file describing a DuplicationPlan.
        credential: Authentication credentials. If None, retrieved automatically.
        logging_level: Logging level for deriva_duplicate. Defaults to WARNING.
        deriva_logging_level: Logging level for the deriva libraries. Defaults to WARNING.
        logger_overrides: Per-logger levels applied after the levels above,
            e.g. ``{"deriva_duplicate.Duplicator": "DEBUG"}``.
        not_found_code: Provider fault code meaning "record does not exist".
    """

    hostname: str
    catalog_id: str | int = 1
    schema_name: str | None = None
    plan: str | None = None
    plan_file: str | Path | None = None
    credential: Any = None
    logging_level: Any = logging.WARNING
    deriva_logging_level: Any = logging.WARNING
    logger_overrides: dict[str, Any] | None = None
    not_found_code: int = RECORD_NOT_FOUND_CODE

    def load_plan(self) -> DuplicationPlan:
        """Resolve the configured plan.

        Raises:
            PlanConfigurationError: If the plan file is missing or invalid, or no plan is configured.
        """
        if self.plan_file is not None:
            return load_plan_file(self.plan_file)
        if self.plan is not None:
            # Imported here: presets build on the policy package, which must not depend on configuration.
            from deriva_duplicate.presets import get_preset

            return get_preset(self.plan)
        raise PlanConfigurationError("Either plan or plan_file must be configured")


def load_plan_file(path: str | Path) -> DuplicationPlan:
    """Load and validate a DuplicationPlan from a YAML or JSON file."""
    path = Path(path)
    if not path.exists():
        raise PlanConfigurationError(f"Plan file not found: {path}")
    data = OmegaConf.to_container(OmegaConf.load(path), resolve=True)
    try:
        return DuplicationPlan.model_validate(data)
    except ValidationError as e:
        raise PlanConfigurationError(f"Invalid plan file {path}: {e}")


# =============================================================================
# Hydra Integration
# =============================================================================

DuplicatorConf = builds(DuplicatorConfig, populate_full_signature=True)

store(DuplicatorConf(hostname="localhost"), group="deriva_duplicate", name="default_deriva")

store(
    HydraConf(
        run=RunDir("${oc.env:HOME}/.deriva/deriva-duplicate/hydra/${now:%Y-%m-%d_%H-%M-%S}"),
        output_subdir="hydra-config",
    ),
    group="hydra",
    name="config",
)
