"""
Meeting Context - best-effort knowledge gathered during a meeting

Successful tool results are parsed as JSON; recognizable ``company``,
``person`` and ``events`` fields are merged in. Anything else is ignored.
Nothing here is authoritative and nothing here raises.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .workflows import Workflow

logger = logging.getLogger(__name__)


@dataclass
class MeetingContext:
    company_info: Dict[str, Any] = field(default_factory=dict)
    person_info: Dict[str, Any] = field(default_factory=dict)
    document_history: Dict[str, Any] = field(default_factory=dict)
    calendar_events: List[Any] = field(default_factory=list)
    active_workflows: Dict[str, Workflow] = field(default_factory=dict)
    pending_workflows: Dict[str, Workflow] = field(default_factory=dict)

    def absorb(self, result_text: str) -> bool:
        """
        Merge entities from a successful tool result.

        Returns True if anything was merged.
        """
        if not result_text:
            return False
        try:
            data = json.loads(result_text)
        except (TypeError, ValueError):
            return False
        if not isinstance(data, dict):
            return False

        merged = False
        company = data.get("company")
        if isinstance(company, str) and company:
            self.company_info[company] = data
            merged = True
        person = data.get("person")
        if isinstance(person, str) and person:
            self.person_info[person] = data
            merged = True
        events = data.get("events")
        if isinstance(events, list):
            self.calendar_events.extend(events)
            merged = merged or bool(events)

        if merged:
            logger.debug(
                f"[Context] companies={len(self.company_info)} people={len(self.person_info)} "
                f"events={len(self.calendar_events)}"
            )
        return merged

    def is_empty(self) -> bool:
        return not (self.company_info or self.person_info or self.calendar_events)

    def summary(self) -> str:
        """Advisory block for the system prompt; empty when nothing is known."""
        if self.is_empty():
            return ""
        lines = ["=== MEETING CONTEXT ==="]
        if self.company_info:
            lines.append(f"Companies discussed: {', '.join(self.company_info)}")
        if self.person_info:
            lines.append(f"People discussed: {', '.join(self.person_info)}")
        if self.calendar_events:
            lines.append(f"Upcoming calendar events: {len(self.calendar_events)}")
        return "\n".join(lines)

    def clear(self) -> None:
        self.company_info.clear()
        self.person_info.clear()
        self.document_history.clear()
        self.calendar_events.clear()
        self.active_workflows.clear()
        self.pending_workflows.clear()
