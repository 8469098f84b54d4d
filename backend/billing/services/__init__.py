"""Subscription lifecycle services: transitions, batch jobs, request moderation and read queries."""
