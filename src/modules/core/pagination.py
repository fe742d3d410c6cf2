"""Shared DRF pagination."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination with a client-adjustable ``page_size``."""

    page_size_query_param = "page_size"
    max_page_size = 100
