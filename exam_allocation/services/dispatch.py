from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)

EXPORT = "export"
EMAIL = "email"


@dataclass
class DispatchOutcome:
    schedule_id: int
    action: str
    success: bool
    message: str


class DispatchGateway(Protocol):
    """Hands a schedule document to the export or mail service.

    Implementations raise UpstreamUnavailable when the service cannot be reached.
    """

    def export_schedule(self, document: Dict[str, Any]) -> None:
        ...

    def email_schedule(self, document: Dict[str, Any]) -> None:
        ...


@dataclass
class LoggingDispatchGateway:
    """Records requests instead of producing files or sending mail."""

    sent: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)

    def export_schedule(self, document: Dict[str, Any]) -> None:
        logger.info("Export requested for schedule %s (%d slots)", document["id"], len(document["slots"]))
        self.sent.append((EXPORT, document))

    def email_schedule(self, document: Dict[str, Any]) -> None:
        logger.info("Email requested for schedule %s (%d slots)", document["id"], len(document["slots"]))
        self.sent.append((EMAIL, document))
