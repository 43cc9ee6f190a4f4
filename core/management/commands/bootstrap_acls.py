"""
Sync role/feature groups and their permissions from config/access.yaml.

The YAML is the source of truth: a synced group ends up with exactly the
permissions listed for it (plus everything it inherits), nothing more.

Usage:
  python manage.py bootstrap_acls --dry-run
  python manage.py bootstrap_acls
  python manage.py bootstrap_acls --file /custom/access.yaml
"""
# File: core/management/commands/bootstrap_acls.py
# Version: 1.2.0
# Author: vas
# Modified: 2026-10-18

import logging
from pathlib import Path
from typing import Dict, Set

import yaml
from django.apps import apps
from django.conf import settings
from django.contrib.auth.models import Group, Permission
from django.contrib.contenttypes.models import ContentType
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from core.utils.authz import refresh_acl_cache

PERM_KINDS = ("view", "add", "change", "delete")

admin_logger = logging.getLogger("intranet.admin")


def load_groups(path: Path) -> Dict[str, dict]:
    if not path.exists():
        raise CommandError(f"Required file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise CommandError(f"Invalid YAML in {path}: {e}")
    return {name: (cfg or {}) for name, cfg in (data.get("groups") or {}).items()}


def _model(label: str):
    try:
        return apps.get_model(label)
    except (LookupError, ValueError):
        raise CommandError(f"Model not found: {label} (use 'app_label.ModelName')")


def _permission(model, codename: str) -> Permission:
    ct = ContentType.objects.get_for_model(model)
    try:
        return Permission.objects.get(content_type=ct, codename=codename)
    except Permission.DoesNotExist:
        raise CommandError(f"Permission {ct.app_label}.{codename} does not exist. Did you run migrations?")


def own_permissions(name: str, cfg: dict) -> Set[Permission]:
    """Permissions a group lists itself (models: kinds, custom_perms: codenames)."""
    perms: Set[Permission] = set()
    for label, kinds in (cfg.get("models") or {}).items():
        model = _model(label)
        for kind in kinds or []:
            if kind not in PERM_KINDS:
                raise CommandError(f"Unknown perm kind '{kind}' for {label} in group '{name}'.")
            perms.add(_permission(model, f"{kind}_{model._meta.model_name}"))
    for label, codes in (cfg.get("custom_perms") or {}).items():
        model = _model(label)
        perms.update(_permission(model, code) for code in codes or [])
    return perms


def resolve_groups(groups_cfg: Dict[str, dict]) -> Dict[str, Set[Permission]]:
    """Every group's effective permission set, inheritance applied."""
    resolved: Dict[str, Set[Permission]] = {}

    def resolve(name, chain):
        if name in resolved:
            return resolved[name]
        if name in chain:
            raise CommandError(f"Circular inheritance: {' > '.join(chain + [name])}")
        if name not in groups_cfg:
            raise CommandError(f"Group '{name}' referenced but not defined.")
        cfg = groups_cfg[name]
        perms = own_permissions(name, cfg)
        for parent in cfg.get("inherits") or []:
            perms |= resolve(parent, chain + [name])
        resolved[name] = perms
        return perms

    for name in groups_cfg:
        resolve(name, [])
    return resolved


def _codes(perms) -> str:
    return ", ".join(sorted(p.codename for p in perms))


class Command(BaseCommand):
    help = "Create/refresh role and feature groups from the ACL YAML file (idempotent, exact sync)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--file", "-f",
            default=None,
            help="Path to YAML file (default: settings.ACL_CONFIG_PATH)",
        )
        parser.add_argument("--dry-run", action="store_true", help="Show planned changes without applying them.")

    def handle(self, *args, **opts):
        file_path = Path(opts["file"] or settings.ACL_CONFIG_PATH)
        dry = opts["dry_run"]

        groups_cfg = load_groups(file_path)
        if not groups_cfg:
            self.stdout.write(self.style.WARNING("No groups defined. Nothing to do."))
            return

        wanted = resolve_groups(groups_cfg)
        counts = {"created": 0, "updated": 0, "unchanged": 0}
        prefix = "[DRY] " if dry else ""

        with transaction.atomic():
            for name, perms in wanted.items():
                group = Group.objects.filter(name=name).first()
                current = set(group.permissions.all()) if group else set()
                grant, revoke = perms - current, current - perms

                if group is None:
                    counts["created"] += 1
                    self.stdout.write(self.style.NOTICE(f"{prefix}Create group: {name}"))
                elif grant or revoke:
                    counts["updated"] += 1
                else:
                    counts["unchanged"] += 1
                    continue

                if grant:
                    self.stdout.write(f"  {prefix}grant {name}: {_codes(grant)}")
                if revoke:
                    self.stdout.write(f"  {prefix}revoke {name}: {_codes(revoke)}")

                if not dry:
                    group = group or Group.objects.create(name=name)
                    group.permissions.set(perms)

        summary = ", ".join(f"{n} {k}" for k, n in counts.items() if n)
        if dry:
            self.stdout.write(self.style.WARNING(f"\nDry run. {summary}. No changes applied."))
            return

        refresh_acl_cache()
        admin_logger.info(f"ACL bootstrap from {file_path}: {summary}")
        self.stdout.write(self.style.SUCCESS(f"\nACL sync complete! {summary}."))
