"""DocFlow roles and capability table.

Roles are a flat, closed set. Each role carries an explicit capability list;
nothing is inherited. A principal's effective capabilities are the union of
the capabilities of its roles, computed at evaluation time.

Capability Matrix:
┌──────────────────────────┬───────┬──────────┬─────────┬─────────┬──────────┬──────┐
│ Capability               │ ADMIN │ DISTRICT │ BR. MGR │ BR. USR │ UPLOADER │ USER │
├──────────────────────────┼───────┼──────────┼─────────┼─────────┼──────────┼──────┤
│ documents:create         │   ✓   │    ✓     │         │         │    ✓     │      │
│ documents:read_branch    │   ✓   │          │         │    ✓    │          │  ✓   │
│ documents:read_all       │   ✓   │    ✓     │    ✓    │         │          │      │
│ documents:update_status  │   ✓   │    ✓     │    ✓    │    ✓    │          │      │
│ documents:verify_files   │   ✓   │    ✓     │         │         │    ✓     │      │
│ documents:receive        │   ✓   │    ✓     │         │         │          │      │
│ comments:create          │   ✓   │    ✓     │    ✓    │    ✓    │    ✓     │  ✓   │
│ activity:read            │   ✓   │    ✓     │         │         │          │      │
│ admin:system             │   ✓   │          │         │         │          │      │
└──────────────────────────┴───────┴──────────┴─────────┴─────────┴──────────┴──────┘
"""

from enum import Enum
from typing import FrozenSet, Iterable


class DocFlowRole(str, Enum):
    """Role identifiers. Values match the role names stored for users and carried in tokens."""
    ADMIN = "admin"
    DISTRICT_MANAGER = "district_manager"
    BRANCH_MANAGER = "branch_manager"
    BRANCH_USER = "branch_user"
    UPLOADER = "uploader"
    USER = "user"


class Capability(str, Enum):
    DOCUMENTS_CREATE = "documents:create"
    DOCUMENTS_READ_BRANCH = "documents:read_branch"
    DOCUMENTS_READ_ALL = "documents:read_all_branches"
    DOCUMENTS_UPDATE_STATUS = "documents:update_status"
    DOCUMENTS_VERIFY_FILES = "documents:verify_files"
    DOCUMENTS_RECEIVE = "documents:receive"
    COMMENTS_CREATE = "comments:create"
    ACTIVITY_READ = "activity:read"
    ADMIN_SYSTEM = "admin:system"


ROLE_CAPABILITIES: dict[DocFlowRole, FrozenSet[Capability]] = {
    DocFlowRole.ADMIN: frozenset(Capability),
    DocFlowRole.DISTRICT_MANAGER: frozenset({
        Capability.DOCUMENTS_CREATE,
        Capability.DOCUMENTS_READ_ALL,
        Capability.DOCUMENTS_UPDATE_STATUS,
        Capability.DOCUMENTS_VERIFY_FILES,
        Capability.DOCUMENTS_RECEIVE,
        Capability.COMMENTS_CREATE,
        Capability.ACTIVITY_READ,
    }),
    DocFlowRole.BRANCH_MANAGER: frozenset({
        Capability.DOCUMENTS_READ_ALL,
        Capability.DOCUMENTS_UPDATE_STATUS,
        Capability.COMMENTS_CREATE,
    }),
    DocFlowRole.BRANCH_USER: frozenset({
        Capability.DOCUMENTS_READ_BRANCH,
        Capability.DOCUMENTS_UPDATE_STATUS,
        Capability.COMMENTS_CREATE,
    }),
    DocFlowRole.UPLOADER: frozenset({
        Capability.DOCUMENTS_CREATE,
        Capability.DOCUMENTS_VERIFY_FILES,
        Capability.COMMENTS_CREATE,
    }),
    DocFlowRole.USER: frozenset({
        Capability.DOCUMENTS_READ_BRANCH,
        Capability.COMMENTS_CREATE,
    }),
}


# Role tiers: roles sharing the same transition rights
UPLOADER_TIER: FrozenSet[DocFlowRole] = frozenset({
    DocFlowRole.UPLOADER,
    DocFlowRole.DISTRICT_MANAGER,
    DocFlowRole.ADMIN,
})

BRANCH_TIER: FrozenSet[DocFlowRole] = frozenset({
    DocFlowRole.BRANCH_USER,
    DocFlowRole.BRANCH_MANAGER,
    DocFlowRole.ADMIN,
    DocFlowRole.DISTRICT_MANAGER,
})

# Roles whose branch scope is the whole region of the principal
REGION_SCOPED_ROLES: FrozenSet[DocFlowRole] = frozenset({
    DocFlowRole.DISTRICT_MANAGER,
    DocFlowRole.BRANCH_MANAGER,
})


def parse_roles(names: Iterable[str]) -> FrozenSet[DocFlowRole]:
    """Convert role names to DocFlowRole members, dropping unknown names.

    Example:
        >>> sorted(r.value for r in parse_roles(["admin", "superuser"]))
        ['admin']
    """
    known = {role.value: role for role in DocFlowRole}
    return frozenset(known[name] for name in names if name in known)


def capabilities_for(roles: Iterable[DocFlowRole]) -> FrozenSet[Capability]:
    """Union of the capabilities of every role."""
    result: set[Capability] = set()
    for role in roles:
        result |= ROLE_CAPABILITIES.get(role, frozenset())
    return frozenset(result)


def has_capability(roles: Iterable[DocFlowRole], capability: Capability) -> bool:
    """Check if any of the roles carries the capability.

    Examples:
        >>> has_capability({DocFlowRole.UPLOADER}, Capability.DOCUMENTS_VERIFY_FILES)
        True
        >>> has_capability({DocFlowRole.BRANCH_USER}, Capability.DOCUMENTS_VERIFY_FILES)
        False
    """
    return capability in capabilities_for(roles)


def in_tier(roles: Iterable[DocFlowRole], tier: FrozenSet[DocFlowRole]) -> bool:
    """True if the role set intersects the tier."""
    return not tier.isdisjoint(roles)
