"""Role / action / resource authorization with per-team overrides.

Permissions are tri-state. ``UNSET`` means "no opinion here": a team override
set to ``UNSET`` still wins over the built-in matrix, and callers only refuse
an operation on ``DENY``.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from umlpro_service.db.models import TeamRole
from umlpro_service.errors import PermissionDenied

# action -> resource -> true | false | null, as stored on a team
CustomRules = dict[str, dict[str, bool | None]]


class Permission(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    UNSET = "unset"

    @classmethod
    def from_value(cls, value: bool | None) -> Permission:
        if value is None:
            return cls.UNSET
        return cls.ALLOW if value else cls.DENY

    def to_value(self) -> bool | None:
        if self is Permission.UNSET:
            return None
        return self is Permission.ALLOW

    @property
    def denied(self) -> bool:
        return self is Permission.DENY


T, F, N = True, False, None

ROLE_RULES: dict[str, CustomRules] = {
    TeamRole.ADMIN.value: {
        "create": {"bucket": T, "file": T, "folder": T},
        "read": {"bucket": T, "file": T},
        "update": {"bucket": T, "file": T},
        "write": {"bucket": T, "file": T},
        "execute": {"bucket": F, "file": T},
        "delete": {"bucket": T, "file": T},
        "list": {"bucket": T, "file": T, "folder": T},
        "rule": {"modify": T, "limit": T, "list": T},
    },
    TeamRole.MEMBER.value: {
        "create": {"bucket": F, "file": T, "folder": T},
        "read": {"bucket": T, "file": T},
        "update": {"bucket": F, "file": T},
        "write": {"bucket": F, "file": T},
        "execute": {"bucket": F, "file": N},
        "delete": {"bucket": F, "file": N},
        "list": {"bucket": F, "file": T, "folder": T},
        "rule": {"modify": F, "limit": F, "list": T},
    },
    TeamRole.VIEWER.value: {
        "create": {"bucket": F, "file": F, "folder": F},
        "read": {"bucket": T, "file": T},
        "update": {"bucket": F, "file": F},
        "write": {"bucket": F, "file": F},
        "execute": {"bucket": F, "file": F},
        "delete": {"bucket": F, "file": F},
        "list": {"bucket": T, "file": T, "folder": T},
        "rule": {"modify": F, "limit": F, "list": T},
    },
}

RESOURCE_ACTIONS = ("create", "read", "update", "write", "execute", "delete", "list")

# Actions and resources materialised by effective_rules().
EFFECTIVE_RULE_RESOURCES: dict[str, tuple[str, ...]] = {
    "create": ("bucket", "file", "folder"),
    "read": ("bucket", "file"),
    "update": ("bucket", "file"),
    "delete": ("bucket", "file"),
    "list": ("bucket", "file", "folder"),
}

# Actions evaluate() answers from the matrix; other actions need an override.
EVALUATED_ACTIONS = tuple(EFFECTIVE_RULE_RESOURCES)


def _role_value(role: TeamRole | str) -> str:
    return role.value if isinstance(role, TeamRole) else str(role)


def default_permission(role: TeamRole | str, action: str, resource: str) -> Permission:
    """Look up the built-in matrix. Unknown roles, actions and resources deny."""
    if action not in RESOURCE_ACTIONS:
        return Permission.DENY
    rules = ROLE_RULES.get(_role_value(role))
    if not rules or action not in rules:
        return Permission.DENY
    resources = rules[action]
    if resource not in resources:
        return Permission.DENY
    return Permission.from_value(resources[resource])


def has_permission(role: TeamRole | str, action: str, resource: str) -> bool:
    """Strict check against the built-in matrix; UNSET counts as not permitted."""
    return default_permission(role, action, resource) is Permission.ALLOW


def evaluate(
    role: TeamRole | str,
    action: str,
    resource: str,
    overrides: Mapping[str, Mapping[str, bool | None]] | None = None,
) -> Permission:
    """Resolve a permission, letting any defined team override win verbatim.

    Without an override only create, read, update, delete and list fall back
    to the matrix. Anything else, write and execute included, is DENY.
    """
    if overrides:
        action_overrides = overrides.get(action)
        if action_overrides is not None and resource in action_overrides:
            return Permission.from_value(action_overrides[resource])
    if action not in EVALUATED_ACTIONS:
        return Permission.DENY
    return default_permission(role, action, resource)


def _rule_gate(role: TeamRole | str, rule_action: str) -> bool:
    rules = ROLE_RULES.get(_role_value(role))
    if not rules or "rule" not in rules:
        return False
    return rules["rule"].get(rule_action) is True


def can_modify_team_rules(role: TeamRole | str) -> bool:
    return _rule_gate(role, "modify")


def can_set_rule_limits(role: TeamRole | str) -> bool:
    return _rule_gate(role, "limit")


def can_list_team_rules(role: TeamRole | str) -> bool:
    return _rule_gate(role, "list")


def is_valid_custom_rules(value: Any) -> bool:
    """A mapping of mappings whose leaves are True, False or None."""
    if not isinstance(value, Mapping):
        return False
    for resources in value.values():
        if not isinstance(resources, Mapping):
            return False
        for leaf in resources.values():
            if leaf is not True and leaf is not False and leaf is not None:
                return False
    return True


def set_custom_rules(team: Any, role: TeamRole | str, rules: CustomRules) -> None:
    """Replace the team's override map.

    Raises PermissionDenied if ``role`` may not modify team rules.
    """
    if not can_modify_team_rules(role):
        raise PermissionDenied(
            f"Role '{_role_value(role)}' does not have permission to modify team rules"
        )
    team.custom_rules = {action: dict(resources) for action, resources in rules.items()}


def effective_rules(
    role: TeamRole | str, overrides: Mapping[str, Mapping[str, bool | None]] | None = None
) -> CustomRules:
    """Default rules for ``role`` with the override map laid over them.

    The overlay is per action key: an overridden action replaces the whole
    default resource map for that action. evaluate() checks overrides per
    resource instead, so the two can disagree for resources the override
    does not mention.
    """
    rules: CustomRules = {
        action: {
            resource: default_permission(role, action, resource).to_value()
            for resource in resources
        }
        for action, resources in EFFECTIVE_RULE_RESOURCES.items()
    }
    if overrides:
        for action, resources in overrides.items():
            rules[action] = dict(resources)
    return rules
