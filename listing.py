#!/usr/bin/env python3
# listing.py
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from graphql_client import ApiError, AuthError
from models import Pagination, parse_page

logger = logging.getLogger(__name__)

ALL = "all"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ListView:
    """
    Paginated, filterable list of one entity type.

    The rows shown are always exactly the last successful response for the
    current page/search/status/scope combination; changing a filter sends the
    view back to page 1.
    """

    def __init__(self, document: str, root: str, record_cls, limit: int = 10, scope: Optional[Dict[str, Any]] = None):
        self.document = document
        self.root = root
        self.record_cls = record_cls
        self.limit = limit
        self.page = 1
        self.search: Optional[str] = None
        self.status: Optional[str] = None
        self.filters: Dict[str, Any] = {k: v for k, v in (scope or {}).items() if v is not None}
        self.rows = []
        self.pagination = Pagination(limit=limit)
        self.loading = False
        self.loaded = False
        self.error: Optional[str] = None

    @classmethod
    def from_args(cls, args, document, root, record_cls, limit=10, scope=None) -> "ListView":
        view = cls(document, root, record_cls, limit=limit, scope=scope)
        view.search = _clean(args.get("search"))
        status = _clean(args.get("status"))
        view.status = None if status == ALL else status
        try:
            view.page = max(1, int(args.get("page", 1)))
        except (TypeError, ValueError):
            view.page = 1
        return view

    def set_search(self, value: Optional[str]) -> None:
        value = _clean(value)
        if value != self.search:
            self.search = value
            self.page = 1

    def set_status(self, value: Optional[str]) -> None:
        value = _clean(value)
        if value == ALL:
            value = None
        if value != self.status:
            self.status = value
            self.page = 1

    def set_filter(self, name: str, value: Any) -> None:
        if value == "":
            value = None
        if self.filters.get(name) != value:
            if value is None:
                self.filters.pop(name, None)
            else:
                self.filters[name] = value
            self.page = 1

    def go_to(self, page: int) -> None:
        self.page = max(1, int(page))

    def variables(self) -> Dict[str, Any]:
        variables = {"page": self.page, "limit": self.limit}
        if self.search:
            variables["search"] = self.search
        if self.status:
            variables["status"] = self.status
        variables.update(self.filters)
        return variables

    def load(self, client) -> "ListView":
        self.rows = []
        self.pagination = Pagination(page=self.page, limit=self.limit)
        self.error = None
        self.loading = True
        try:
            payload = client.fetch(self.document, self.root, self.variables())
            page = parse_page(payload, self.record_cls)
        except AuthError:
            raise
        except ApiError as e:
            logger.warning("loading %s failed: %s", self.root, e.message)
            self.error = e.message
        except ValidationError as e:
            logger.warning("malformed %s page: %s", self.root, e)
            self.error = "Unexpected response from the server"
        else:
            self.rows = page.rows
            self.pagination = page.pagination
        finally:
            self.loading = False
            self.loaded = True
        return self

    @property
    def empty(self) -> bool:
        return self.loaded and self.error is None and not self.rows

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pagination.totalPages

    def query_args(self, page: Optional[int] = None, **extra) -> Dict[str, Any]:
        """URL arguments for another page of this same listing."""
        args = dict(extra, page=page or self.page)
        if self.search:
            args["search"] = self.search
        if self.status:
            args["status"] = self.status
        return args
