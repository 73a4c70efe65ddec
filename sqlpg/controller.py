"""Actions behind the page's buttons"""

import logging
from dataclasses import asdict, dataclass, field
from pathlib import PurePath

from sqlpg.prompts import (
    build_convert_prompt,
    build_erd_prompt,
    build_overview_prompt,
    build_verify_prompt,
)
from sqlpg.render import (
    escape_script,
    extract_fenced,
    find_tsql_remnants,
    render_diagram,
    render_markdown,
)

logger = logging.getLogger(__name__)

LOADING_TEXT = {
    "overview": "Generating overview...",
    "diagram": "Generating ERD diagram...",
    "convert": "Converting to PostgreSQL...",
    "verify": "Verifying the converted code...",
}

INVALID_FILE_ALERT = "Please upload a valid .sql file."
SAMPLE_FAILED_ALERT = "Failed to load employee data. Please try again later."
NO_SCRIPT_OVERVIEW_ALERT = "No SQL Server code to summarize."
NO_SCRIPT_DIAGRAM_ALERT = "No SQL Server code to analyze for ERD generation."
NO_SCRIPT_CONVERT_ALERT = "No SQL Server code to convert."
NO_CONVERTED_ALERT = "No converted PostgreSQL code to verify."
DIAGRAM_FAILED_TEXT = "Failed to generate ERD diagram."

RENDERED = "rendered"
FAILED = "failed"
REJECTED = "rejected"
SUPERSEDED = "superseded"
LOADED = "loaded"
CLEARED = "cleared"


@dataclass
class ActionOutcome:
    action: str
    status: str
    html: str = ""
    script_html: str = ""
    diagram: str = ""
    warnings: list = field(default_factory=list)
    alert: str = ""
    failure: str = ""
    follow_up: str = ""

    def to_dict(self):
        return asdict(self)


class AssistantController:
    """Runs one action against a session's state and a completion client"""

    def __init__(self, state, completion_client, settings):
        self.state = state
        self.client = completion_client
        self.settings = settings

    # -- loading a script --------------------------------------------------

    def upload(self, filename, data):
        if not filename or not filename.endswith(".sql"):
            return ActionOutcome("upload", REJECTED, alert=INVALID_FILE_ALERT)
        text = data.decode("utf-8", errors="replace")
        return self._loaded("upload", text, PurePath(filename).name)

    def load_sample(self):
        path = self.settings.sample_path
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Error loading sample data from %s: %s", path, e)
            return ActionOutcome("sample", REJECTED, alert=SAMPLE_FAILED_ALERT)
        return self._loaded("sample", text, path.name)

    def _loaded(self, action, text, filename):
        self.state.set_script(text, filename)
        logger.info("Loaded %s (%d chars)", filename, len(text))
        return ActionOutcome(
            action, LOADED, script_html=escape_script(text), follow_up="overview"
        )

    # -- LLM-backed actions ------------------------------------------------

    def generate_overview(self):
        run = self.state.begin("overview")
        if run is None:
            return ActionOutcome("overview", REJECTED, alert=NO_SCRIPT_OVERVIEW_ALERT)

        result = self.client.complete(build_overview_prompt(run.script))
        with self.state.lock:
            if not self.state.is_current("overview", run.ticket):
                return ActionOutcome("overview", SUPERSEDED)
            if result.ok:
                self.state.set_overview(result.text)
        return self._markdown_outcome("overview", result)

    def generate_diagram(self):
        run = self.state.begin("diagram")
        if run is None:
            return ActionOutcome("diagram", REJECTED, alert=NO_SCRIPT_DIAGRAM_ALERT)

        result = self.client.complete(build_erd_prompt(run.script))
        if not self.state.is_current("diagram", run.ticket):
            return ActionOutcome("diagram", SUPERSEDED)

        if not result.ok:
            return ActionOutcome(
                "diagram", FAILED, html=DIAGRAM_FAILED_TEXT, failure=result.failure.value
            )
        rendered = render_diagram(result.text)
        warnings = [rendered.warning] if rendered.warning else []
        if not rendered.source:
            return ActionOutcome("diagram", FAILED, html=DIAGRAM_FAILED_TEXT, warnings=warnings)
        if rendered.warning:
            logger.warning("ERD response: %s", rendered.warning)
        return ActionOutcome(
            "diagram", RENDERED, html=rendered.html, diagram=rendered.source, warnings=warnings
        )

    def convert(self):
        run = self.state.begin("convert")
        if run is None:
            return ActionOutcome("convert", REJECTED, alert=NO_SCRIPT_CONVERT_ALERT)

        result = self.client.complete(build_convert_prompt(run.script))
        with self.state.lock:
            if not self.state.is_current("convert", run.ticket):
                return ActionOutcome("convert", SUPERSEDED)
            self.state.set_converted(result.text if result.ok else "")

        outcome = self._markdown_outcome("convert", result)
        if result.ok:
            outcome.warnings = find_tsql_remnants(extract_fenced(result.text).body)
        return outcome

    def verify(self):
        run = self.state.begin("verify", needs="converted")
        if run is None:
            return ActionOutcome("verify", REJECTED, alert=NO_CONVERTED_ALERT)

        result = self.client.complete(build_verify_prompt(run.script, run.converted))
        if not self.state.is_current("verify", run.ticket):
            return ActionOutcome("verify", SUPERSEDED)
        return self._markdown_outcome("verify", result)

    def _markdown_outcome(self, action, result):
        status = RENDERED if result.ok else FAILED
        failure = result.failure.value if result.failure else ""
        return ActionOutcome(action, status, html=render_markdown(result.text), failure=failure)

    # -- extras --------------------------------------------------------------

    def converted_download(self):
        """(filename, sql) for the converted script, or None before a conversion"""
        converted = self.state.get_converted()
        if not converted:
            return None
        stem = PurePath(self.state.filename).stem if self.state.filename else ""
        name = f"{stem}_pg.sql" if stem else "converted_pg.sql"
        return name, extract_fenced(converted).body + "\n"
