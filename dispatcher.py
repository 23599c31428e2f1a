#!/usr/bin/env python3
# dispatcher.py
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class DispatchBusy(Exception):
    """A mutation from the same form is still outstanding."""


class MutationDispatcher:
    """
    Runs create/update/delete mutations one at a time.

    `in_flight` is true only while a mutation is outstanding; forms read it to
    disable their submit control. Nothing is retried or queued: a second call
    while one is in flight raises DispatchBusy. After a successful mutation the
    registered invalidate callbacks run so the owning view reloads from the
    server instead of patching local copies.
    """

    def __init__(self):
        self.in_flight = False
        self._invalidators: List[Callable[[Dict[str, Any]], None]] = []

    def on_success(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        self._invalidators.append(callback)

    def run(self, client, document: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.in_flight:
            raise DispatchBusy("A request is already in progress")
        self.in_flight = True
        try:
            data = client.execute(document, variables)
        finally:
            self.in_flight = False
        logger.info("mutation %s ok", next(iter(data), "?"))
        for callback in self._invalidators:
            callback(data)
        return data
