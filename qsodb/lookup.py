"""Find-or-fetch glue between the store and the QRZ client.

`fetch` is any callable taking a callsign and returning CallsignInfo,
normally `QRZClient.fetch_callsign`. Errors from either side propagate.
"""

from __future__ import annotations

import logging
from typing import Callable

from .errors import DuplicateCallsign
from .models import CallsignInfo, normalize_call
from .storage import QSOStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], CallsignInfo]


def resolve_callsign_id(store: QSOStore, call: str, fetch: Fetcher) -> int:
    """Return the stored id for `call`, looking it up and adding it on a miss.

    QRZ answers portable or alias queries (W1AW/P) with the base call, so the
    returned call is checked against the store before inserting.
    """
    callsign_id = store.find_callsign_id(call)
    if callsign_id is not None:
        return callsign_id
    logger.info("Callsign %s not in database, looking it up", call)
    info = fetch(call)
    callsign_id = store.find_callsign_id(info.call)
    if callsign_id is not None:
        logger.info("%s is stored as %s", normalize_call(call), normalize_call(info.call))
        return callsign_id
    return store.insert_callsign(info)


def add_callsign(store: QSOStore, call: str, fetch: Fetcher) -> int:
    """Look up `call` and add it; DuplicateCallsign if it is already stored."""
    if store.find_callsign_id(call) is not None:
        raise DuplicateCallsign(normalize_call(call))
    return store.insert_callsign(fetch(call))
