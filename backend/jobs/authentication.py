"""Shared-secret authentication for scheduler-triggered endpoints."""
from __future__ import annotations

import hmac

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions, permissions

CRON_AUTH = "cron"
KEYWORD = "Bearer"


class CronSecretAuthentication(authentication.BaseAuthentication):
    """
    Accepts ``Authorization: Bearer <CRON_SECRET>``.

    With no secret configured every request is refused.
    """

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).decode("latin-1")
        if not header:
            return None

        expected = getattr(settings, "CRON_SECRET", "") or ""
        if not expected:
            raise exceptions.AuthenticationFailed("Cron secret is not configured.")

        keyword, _, supplied = header.partition(" ")
        if keyword != KEYWORD or not hmac.compare_digest(supplied.strip(), expected):
            raise exceptions.AuthenticationFailed("Invalid or missing CRON_SECRET.")
        return AnonymousUser(), CRON_AUTH

    def authenticate_header(self, request):
        return KEYWORD


class HasCronSecret(permissions.BasePermission):
    message = "Invalid or missing CRON_SECRET."

    def has_permission(self, request, view):
        return request.auth == CRON_AUTH
