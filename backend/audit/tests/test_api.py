from django.contrib.auth import get_user_model
from rest_framework.test import APIClient, APITestCase

from audit.models import SYSTEM_ACTOR, AuditAction, AuditLogEntry
from audit.services import record_audit
from tenants.models import Tenant


class AuditLogEntryViewSetTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        User = get_user_model()
        self.tenant = Tenant.objects.create(name="Mama Shop", subdomain="mama-shop")
        self.admin = User.objects.create_user(
            username="platform",
            email="platform@example.com",
            password="password123",
            is_super_admin=True,
        )
        self.owner = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            password="password123",
            tenant=self.tenant,
            role=User.Role.OWNER,
        )

    def test_super_admin_sees_all_entries(self):
        record_audit(
            action=AuditAction.EXPIRE_SUBSCRIPTION,
            entity="subscription",
            entity_id="sub-1",
            tenant_id=self.tenant.pk,
        )
        record_audit(
            action=AuditAction.APPROVE_SUBSCRIPTION_REQUEST,
            entity="subscription_request",
            entity_id="req-1",
            tenant_id=self.tenant.pk,
            user=self.admin,
        )

        self.client.force_authenticate(self.admin)
        response = self.client.get("/api/audit/logs/")

        self.assertEqual(response.status_code, 200)
        results = response.data.get("results", response.data)
        self.assertEqual(len(results), 2)
        by_action = {item["action"]: item for item in results}
        self.assertEqual(by_action["EXPIRE_SUBSCRIPTION"]["user_name"], SYSTEM_ACTOR)
        self.assertIsNone(by_action["EXPIRE_SUBSCRIPTION"]["user"])
        self.assertEqual(by_action["APPROVE_SUBSCRIPTION_REQUEST"]["user"]["username"], "platform")

    def test_entries_can_be_filtered_by_action(self):
        record_audit(action=AuditAction.SUSPEND_TENANT, entity="tenant", entity_id=self.tenant.pk)
        record_audit(action=AuditAction.ARCHIVE_TENANT, entity="tenant", entity_id=self.tenant.pk)

        self.client.force_authenticate(self.admin)
        response = self.client.get("/api/audit/logs/", {"action": "archive_tenant"})

        self.assertEqual(response.status_code, 200)
        results = response.data.get("results", response.data)
        self.assertEqual([item["action"] for item in results], ["ARCHIVE_TENANT"])

    def test_tenant_owner_is_forbidden(self):
        self.client.force_authenticate(self.owner)
        response = self.client.get("/api/audit/logs/")

        self.assertEqual(response.status_code, 403)

    def test_anonymous_is_unauthorised(self):
        response = self.client.get("/api/audit/logs/")

        self.assertEqual(response.status_code, 401)


class RecordAuditTests(APITestCase):
    def test_details_are_json_safe(self):
        from datetime import datetime, timezone as dt_timezone
        from decimal import Decimal

        entry = record_audit(
            action=AuditAction.RECORD_PAYMENT,
            entity="billing_ledger_entry",
            entity_id=1,
            details={"amount": Decimal("5.00"), "paid_at": datetime(2025, 1, 1, tzinfo=dt_timezone.utc)},
        )

        entry.refresh_from_db()
        self.assertEqual(entry.details["amount"], "5.00")
        self.assertTrue(entry.details["paid_at"].startswith("2025-01-01T00:00:00"))
        self.assertEqual(entry.user_name, SYSTEM_ACTOR)

    def test_entries_are_append_only(self):
        entry = record_audit(action=AuditAction.START_TRIAL, entity="subscription", entity_id="x")

        entry.details = {"tampered": True}
        with self.assertRaises(ValueError):
            entry.save()
        self.assertEqual(AuditLogEntry.objects.count(), 1)
