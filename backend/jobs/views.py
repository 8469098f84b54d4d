"""HTTP triggers for the lifecycle jobs, called by an external scheduler.

Responses carry the job summary: 200 when every entity succeeded, 207 when
some failed, 500 when the batch itself could not run.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from django.http import JsonResponse
from django.utils import timezone
from rest_framework import status
from rest_framework.views import APIView

from billing.services.queries import subscription_stats

from .authentication import CronSecretAuthentication, HasCronSecret
from .registry import JOB_RUNNERS, NAME_CHANGE_TASKS

logger = logging.getLogger(__name__)

HTTP_207_MULTI_STATUS = 207


class CronJobView(APIView):
    authentication_classes = [CronSecretAuthentication]
    permission_classes = [HasCronSecret]
    job_name: str = ""

    def post(self, request, *args, **kwargs):
        now = timezone.now()
        try:
            summary = JOB_RUNNERS[self.job_name](now)
        except Exception as exc:
            logger.exception("Cron job %s failed", self.job_name)
            return JsonResponse(
                {"success": False, "job": self.job_name, "timestamp": now.isoformat(), "error": str(exc)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        payload: Dict[str, Any] = {"job": self.job_name, "timestamp": now.isoformat(), **summary.to_dict()}
        payload.update(self.extra_payload())
        return JsonResponse(
            payload,
            status=status.HTTP_200_OK if payload["success"] else HTTP_207_MULTI_STATUS,
        )

    def extra_payload(self) -> Dict[str, Any]:
        return {}


class TrialExpirationJobView(CronJobView):
    job_name = "trial-expiration"

    def extra_payload(self) -> Dict[str, Any]:
        return {"stats": subscription_stats()}


class TrialNotificationJobView(CronJobView):
    job_name = "trial-notifications"


class SubscriptionRequestJobView(CronJobView):
    job_name = "subscription-requests"


class SubscriptionRenewalJobView(CronJobView):
    job_name = "subscription-renewal"

    def extra_payload(self) -> Dict[str, Any]:
        return {"stats": subscription_stats()}


class TenantNameChangeJobView(APIView):
    """``?task=apply|auto-approve|all``; with ``all`` approvals run before application."""

    authentication_classes = [CronSecretAuthentication]
    permission_classes = [HasCronSecret]

    def post(self, request, *args, **kwargs):
        task = request.query_params.get("task") or request.data.get("task")
        if task == "all":
            tasks = ["auto-approve", "apply"]
        elif task in NAME_CHANGE_TASKS:
            tasks = [task]
        else:
            return JsonResponse(
                {"success": False, "error": "Invalid or missing task parameter. Use: apply, auto-approve, or all"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        now = timezone.now()
        results: Dict[str, Any] = {}
        try:
            for name in tasks:
                results[name] = NAME_CHANGE_TASKS[name](now).to_dict()
        except Exception as exc:
            logger.exception("Tenant name change task %s failed", task)
            return JsonResponse(
                {"success": False, "task": task, "timestamp": now.isoformat(), "error": str(exc), "results": results},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        success = all(result["success"] for result in results.values())
        return JsonResponse(
            {"success": success, "task": task, "timestamp": now.isoformat(), "results": results},
            status=status.HTTP_200_OK if success else HTTP_207_MULTI_STATUS,
        )
