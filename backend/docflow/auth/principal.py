"""Acting principal.

A Principal is built from verified token claims for every request; its
effective capabilities are derived from its roles and never stored.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from .roles import Capability, DocFlowRole, capabilities_for, in_tier, parse_roles


DEFAULT_REGION_CODE = "R6"


@dataclass(frozen=True)
class Principal:
    """The acting user.

    Attributes:
        user_id: User identifier (token subject)
        roles: Known roles of the user; unknown role names are dropped
        ba_code: Home branch affiliation, None if the user has none
        region_code: Region of the home branch
    """
    user_id: int
    roles: FrozenSet[DocFlowRole] = field(default_factory=frozenset)
    ba_code: Optional[int] = None
    region_code: Optional[str] = DEFAULT_REGION_CODE

    @classmethod
    def from_role_names(
        cls,
        user_id: int,
        role_names: Iterable[str],
        ba_code: Optional[int] = None,
        region_code: Optional[str] = DEFAULT_REGION_CODE,
    ) -> "Principal":
        return cls(
            user_id=user_id,
            roles=parse_roles(role_names),
            ba_code=ba_code,
            region_code=region_code,
        )

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return capabilities_for(self.roles)

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def in_tier(self, tier: FrozenSet[DocFlowRole]) -> bool:
        return in_tier(self.roles, tier)

    def has_role(self, role: DocFlowRole) -> bool:
        return role in self.roles
