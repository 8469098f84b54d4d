"""Pagination shared by the moderation, history, audit and inbox endpoints."""
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class BoundedPageNumberPagination(PageNumberPagination):
    """Page-number pagination; clients may shrink pages with ``?page_size=`` up to 100 rows."""

    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 100
    last_page_strings = ("last", "end")
