"""HTML page rendering with Jinja2 templates.

Provides the PageRenderer used by the dashboard pages. Formatting helpers are
registered as template filters so templates never compute display values
themselves.
"""

import json
import time
from typing import Any, Callable, Dict, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from thermweb_monitor.alerts.evaluator import format_duration
from thermweb_monitor.utils.formatters import format_probe_value, probe_activity, probe_type_label
from thermweb_monitor.utils.timestamps import format_local


class PageRenderer:
    """Renders the dashboard's HTML pages.

    Attributes:
        env: Jinja2 Environment configured with PackageLoader
        display_timezone: IANA timezone for timestamps on pages
    """

    def __init__(
        self,
        display_timezone: str = "America/Puerto_Rico",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize PageRenderer with Jinja2 environment.

        Args:
            display_timezone: IANA timezone name for timestamp display.
            clock: Epoch-seconds clock for reading ages.
        """
        self.display_timezone = display_timezone
        self._clock = clock

        self.env = Environment(
            loader=PackageLoader("thermweb_monitor.web", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters.update(
            {
                "probe_value": lambda probe: format_probe_value(
                    probe.get("value"), probe.get("probetype")
                ),
                "probe_type": probe_type_label,
                "local_time": self.format_timestamp,
                "activity": lambda last: probe_activity(last, self._clock()),
                "duration": format_duration,
                "pretty_json": lambda data: json.dumps(data, indent=2, ensure_ascii=False),
            }
        )

    def format_timestamp(self, value: Optional[Any]) -> str:
        return format_local(value, self.display_timezone)

    def render(self, template_name: str, **context: Any) -> str:
        """Render a template by name with the given context."""
        template = self.env.get_template(template_name)
        return template.render(**context)

    def base_context(self) -> Dict[str, Any]:
        return {"generated_at": self.format_timestamp(self._clock())}
