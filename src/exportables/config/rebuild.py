"""Defaults rebuild settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, cast

from .env import optional_env_var
from .errors import ConfigurationError

type CollisionPolicy = Literal["warn", "error"]

DEFAULT_LOCK_PREFIX: Final[str] = "entity_rebuild_"
DEFAULT_COLLISION_POLICY: Final[CollisionPolicy] = "warn"
DEFAULT_ENTRY_POINT_GROUP: Final[str] = "exportables.modules"

_COLLISION_POLICIES: Final[frozenset[str]] = frozenset({"warn", "error"})


@dataclass(frozen=True, slots=True)
class RebuildConfig:
    lock_prefix: str = DEFAULT_LOCK_PREFIX
    collision_policy: CollisionPolicy = DEFAULT_COLLISION_POLICY
    entry_point_group: str = DEFAULT_ENTRY_POINT_GROUP


def get_rebuild_config() -> RebuildConfig:
    policy = optional_env_var("EXPORTABLES_COLLISION_POLICY", DEFAULT_COLLISION_POLICY).lower()
    if policy not in _COLLISION_POLICIES:
        raise ConfigurationError(
            "EXPORTABLES_COLLISION_POLICY must be one of: "
            f"{', '.join(sorted(_COLLISION_POLICIES))}"
        )
    return RebuildConfig(
        lock_prefix=optional_env_var("EXPORTABLES_LOCK_PREFIX", DEFAULT_LOCK_PREFIX),
        collision_policy=cast("CollisionPolicy", policy),
        entry_point_group=optional_env_var(
            "EXPORTABLES_ENTRY_POINT_GROUP", DEFAULT_ENTRY_POINT_GROUP
        ),
    )
