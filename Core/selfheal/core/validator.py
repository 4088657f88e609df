from __future__ import annotations

import logging
from typing import Any

from selfheal.core.document import DocumentQuery
from selfheal.core.exceptions import LookupTimeout

log = logging.getLogger(__name__)


class CandidateValidator:
    """Checks that an identifier resolves to at least one live element.

    The wait matches the one used for primary lookups so that a candidate
    which is still rendering is not rejected earlier than the original would be.
    """

    def __init__(self, document: DocumentQuery, timeout: float = 2.0) -> None:
        self.document = document
        self.timeout = timeout

    def probe(self, identifier: str) -> Any | None:
        try:
            return self.document.query(identifier, self.timeout)
        except LookupTimeout as exc:
            log.debug("Candidate %r did not resolve: %s", identifier, exc)
            return None

    def validate(self, identifier: str) -> bool:
        return self.probe(identifier) is not None
