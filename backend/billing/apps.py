import logging
from decimal import Decimal
from typing import Dict, List

from django.apps import AppConfig
from django.db.models.signals import post_migrate

logger = logging.getLogger(__name__)


def ensure_default_plans() -> Dict[str, List[str]]:
    """Create or refresh the plans declared in ``settings.PLAN_CONFIG``."""

    from django.conf import settings
    from django.db import OperationalError, ProgrammingError
    from .models import Plan

    created, updated = [], []
    plan_config = getattr(settings, "PLAN_CONFIG", {}) or {}

    try:
        for key, config in plan_config.items():
            defaults = {
                "name": config.get("name", key.title()),
                "price": Decimal(str(config.get("price", 0))),
                "description": config.get("description", f"Auto-generated {key} plan"),
                "features": list(config.get("features", [])),
            }

            plan, was_created = Plan.objects.get_or_create(key=key, defaults=defaults)
            if was_created:
                created.append(key)
                continue

            fields_to_update = []
            for field, expected in defaults.items():
                if getattr(plan, field) != expected:
                    setattr(plan, field, expected)
                    fields_to_update.append(field)

            if fields_to_update:
                plan.save(update_fields=fields_to_update)
                updated.append(key)

    except (OperationalError, ProgrammingError):
        logger.debug("Database not ready for plan initialisation.")
        return {"created": [], "updated": []}

    if created or updated:
        logger.info("Plan initialisation completed. created=%s updated=%s", created, updated)
    else:
        logger.info("Plan initialisation completed. No changes required.")

    return {"created": created, "updated": updated}


def init_plans_after_migrate(sender, **kwargs):
    """Called automatically after migrations to initialize default plans."""
    logger.info("[Billing] Running ensure_default_plans() after migrate…")
    ensure_default_plans()


class BillingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'billing'

    def ready(self):
        # Plans are ensured after every migrate run
        post_migrate.connect(init_plans_after_migrate, sender=self)
