from specgate.planning.build_ids import (
    BuildIdStrategy,
    DeterministicBuildIds,
    PinnedBuildIds,
    UniqueBuildIds,
    get_build_id_strategy,
    is_deterministic_build_id,
)
from specgate.planning.plan_builder import (
    EXPECTED_STEP_COUNT,
    STEP_CATALOG,
    StepTemplate,
    TemplateCatalog,
    build_execution_plan,
    validate_plan_shape,
)

__all__ = [
    "BuildIdStrategy",
    "DeterministicBuildIds",
    "EXPECTED_STEP_COUNT",
    "PinnedBuildIds",
    "STEP_CATALOG",
    "StepTemplate",
    "TemplateCatalog",
    "UniqueBuildIds",
    "build_execution_plan",
    "get_build_id_strategy",
    "is_deterministic_build_id",
    "validate_plan_shape",
]
