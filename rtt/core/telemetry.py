from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal
from xml.sax.saxutils import escape

import requests

logger = logging.getLogger("rtt")

LogType = Literal["INFO", "SUCCESS", "ERROR", "PROMPT"]

_XML_ENTITIES = {"'": "&apos;", '"': "&quot;"}


def build_log_record(event: str, type_: LogType, details: Any = None, *, timestamp: str | None = None) -> str:
    """Serialize one lifecycle event as an XML log record."""
    ts = timestamp or datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    lines = [
        f'<log timestamp="{ts}" type="{type_}">',
        f"  <event>{escape(event, _XML_ENTITIES)}</event>",
    ]
    if details:
        body = json.dumps(details, indent=2, ensure_ascii=False, default=str)
        # CDATA cannot contain its own terminator
        body = body.replace("]]>", "]]]]><![CDATA[>")
        lines.append(f"  <details><![CDATA[\n{body}\n]]></details>")
    lines.append("</log>")
    return "\n".join(lines)


class Telemetry:
    """Writes lifecycle records to the ``rtt`` logger and, when an endpoint is
    configured, POSTs them there. Delivery failures never reach the caller."""

    def __init__(self, endpoint: str = "", *, timeout_s: float = 5.0, session: requests.Session | None = None):
        self.endpoint = endpoint
        self.timeout_s = timeout_s
        self._http = session or requests.Session()

    async def log(self, event: str, type_: LogType, details: Any = None) -> str:
        record = build_log_record(event, type_, details)
        if type_ == "ERROR":
            logger.error(record)
        else:
            logger.info(record)

        if self.endpoint:
            await asyncio.to_thread(self._deliver, record)
        return record

    def _deliver(self, record: str) -> None:
        try:
            r = self._http.post(
                self.endpoint,
                data=record.encode("utf-8"),
                headers={"Content-Type": "application/xml"},
                timeout=self.timeout_s,
            )
            if r.status_code >= 400:
                logger.warning("Telemetry sink returned HTTP %s", r.status_code)
        except requests.RequestException as e:
            logger.warning("Telemetry: failed to send log to %s: %s", self.endpoint, e)
