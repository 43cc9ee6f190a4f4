# File: core/utils/authz.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from __future__ import annotations
import os
from functools import lru_cache
from typing import Set, Dict

import yaml
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q

# Default to BASE_DIR/config/access.yaml but allow override in settings
ACL_PATH = getattr(
    settings,
    "ACL_CONFIG_PATH",
    os.path.join(settings.BASE_DIR, "config", "access.yaml"),
)

HR_GROUP = "role:hr"
SUPER_ADMIN_GROUP = "role:super_admin"


@lru_cache(maxsize=1)
def _load_acl() -> Dict[str, Set[str]]:
    """
    Parse YAML once. On a missing or broken file, return empty sets (fail-closed).
    Structure returned: {"groups": {<group names>}}
    """
    try:
        with open(ACL_PATH, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {"groups": set()}
    groups = set((data.get("groups") or {}).keys())
    return {"groups": groups}


def declared_groups() -> Set[str]:
    return set(_load_acl()["groups"])


def _group_in_acl(name: str) -> bool:
    groups = _load_acl()["groups"]
    # If ACL file has no groups at all, fail-closed.
    return bool(groups) and name in groups


def is_in_group(user, group_name: str) -> bool:
    """
    True iff user is in the Django group *and* that group is declared in access.yaml.
    If the group isn’t declared (or ACL missing), we return False.
    """
    if not (user and user.is_authenticated):
        return False
    if not _group_in_acl(group_name):
        return False
    # DB check only if ACL says this group exists
    return user.groups.filter(name=group_name).exists()


def is_super_admin(user) -> bool:
    if not (user and user.is_authenticated):
        return False
    return user.is_superuser or is_in_group(user, SUPER_ADMIN_GROUP)


def is_hr(user) -> bool:
    return is_in_group(user, HR_GROUP)


def is_hr_or_admin(user) -> bool:
    return is_hr(user) or is_super_admin(user)


def hr_and_admin_users():
    """Active accounts holding the HR or super-admin role."""
    User = get_user_model()
    names = [g for g in (HR_GROUP, SUPER_ADMIN_GROUP) if _group_in_acl(g)]
    return (
        User.objects
        .filter(is_active=True)
        .filter(Q(is_superuser=True) | Q(groups__name__in=names))
        .distinct()
        .order_by("pk")
    )


def refresh_acl_cache() -> None:
    """Call this if you change access.yaml at runtime (e.g., from a management command)."""
    _load_acl.cache_clear()
