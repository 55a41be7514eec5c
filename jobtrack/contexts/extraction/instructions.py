"""
Versioned instruction template for the extraction service.

The system instructions are a Jinja2 template rendered with the current date
so the service can resolve relative posting dates. Rendering happens at most
once per calendar day; the compiled template is loaded once per registry.
"""

import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateNotFound

from jobtrack.contexts.extraction.tech_patterns import CATEGORY_KEYS
from jobtrack.utils.timestamp import iso_date, now, relative_date

INSTRUCTIONS_VERSION = "job_extraction_v1"

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class InstructionRegistry:
    """
    Loads the extraction instruction template and caches its rendering by day.

    Example:
        registry = InstructionRegistry()
        system_prompt = registry.get_instructions()
    """

    def __init__(
        self,
        version: str = INSTRUCTIONS_VERSION,
        templates_dir: Path = TEMPLATES_DIR,
        reference_currency: str = "INR",
        clock: Callable[[], datetime] = now,
    ):
        self.version = version
        self.templates_dir = templates_dir
        self.reference_currency = reference_currency
        self.clock = clock

        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            undefined=StrictUndefined,
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=False,
        )
        self._template: Optional[Template] = None
        self._rendered: Optional[str] = None
        self._rendered_for: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def template_path(self) -> Path:
        return self.templates_dir / f"{self.version}.txt.jinja"

    def get_template(self) -> Template:
        """
        Load and cache the compiled template.

        Raises:
            TemplateNotFound: If no template exists for this version
        """
        if self._template is None:
            try:
                self._template = self.env.get_template(f"{self.version}.txt.jinja")
            except TemplateNotFound as e:
                raise TemplateNotFound(
                    f"Instruction template '{self.version}' not found at {self.template_path}"
                ) from e
        return self._template

    def get_instructions(self, at: Optional[datetime] = None) -> str:
        """
        Rendered instructions for the day containing ``at`` (default: now).

        The rendering is reused until the calendar date changes.
        """
        moment = at or self.clock()
        day = iso_date(moment)

        with self._lock:
            if self._rendered is not None and self._rendered_for == day:
                return self._rendered

            rendered = self.get_template().render(
                today=day,
                six_hours_ago=relative_date(moment, hours=6),
                two_days_ago=relative_date(moment, days=2),
                reference_currency=self.reference_currency,
                category_keys=CATEGORY_KEYS,
            )
            self._rendered = rendered
            self._rendered_for = day
            return rendered

    def is_cached_for(self, day: str) -> bool:
        """Check whether the rendering for ``day`` (YYYY-MM-DD) is cached."""
        return self._rendered_for == day

    def clear_cache(self):
        """Drop the rendered text (the compiled template is kept)."""
        with self._lock:
            self._rendered = None
            self._rendered_for = None
