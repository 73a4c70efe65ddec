"""Turn model output into HTML for the page"""

import re
from dataclasses import dataclass

from markdown2 import markdown
from markupsafe import escape

MARKDOWN_EXTRAS = ["fenced-code-blocks", "tables", "break-on-newline", "code-friendly"]

_FENCED_BLOCK = re.compile(
    r"^[ \t]*(?P<fence>(?P<char>[`~])(?P=char){2,})[ \t]*(?P<lang>[\w+-]*)[^\n]*\n"
    r"(?P<body>.*?)\n?"
    # closing fence: same character, at least as long as the opening one
    r"^[ \t]*(?P=fence)(?P=char)*[ \t]*$",
    re.DOTALL | re.MULTILINE,
)
_OPENING_FENCE = re.compile(r"\A\s*(?:`{3,}|~{3,})[ \t]*(?P<lang>[\w+-]*)[^\n]*(?:\n|\Z)")

UNFENCED_WARNING = "Model response was not wrapped in a code block; rendering it as-is."
UNCLOSED_WARNING = "Model response has no closing code fence; output may be truncated."


@dataclass(frozen=True)
class FencedBlock:
    body: str
    language: str = ""
    fenced: bool = True
    warning: str = ""


@dataclass(frozen=True)
class DiagramRender:
    source: str
    html: str
    warning: str = ""


def render_markdown(text):
    return markdown(text or "", extras=MARKDOWN_EXTRAS, safe_mode="escape")


def escape_script(text):
    return str(escape(text))


def extract_fenced(text):
    """Pull the first fenced code block out of a model response.

    ```mermaid / erDiagram / ... / ``` yields the inner lines. A response that
    opens a fence but never closes it keeps everything after the opening
    line; a response with no fence at all is returned trimmed, with a warning.
    """
    text = (text or "").strip()
    match = _FENCED_BLOCK.search(text)
    if match:
        return FencedBlock(match.group("body").rstrip("\n"), match.group("lang").lower())

    opening = _OPENING_FENCE.match(text)
    if opening:
        body = text[opening.end():].rstrip()
        return FencedBlock(body, opening.group("lang").lower(), warning=UNCLOSED_WARNING)

    return FencedBlock(text, fenced=False, warning=UNFENCED_WARNING)


def render_diagram(text):
    block = extract_fenced(text)
    source = block.body.strip("\n")
    if not source.strip():
        return DiagramRender(source="", html="", warning=block.warning)
    html = f'<div class="mermaid">{escape(source)}</div>'
    return DiagramRender(source=source, html=html, warning=block.warning)


TSQL_REMNANTS = {
    r"^\s*GO\s*$": "Contains GO batch separator",
    r"(?<![\w@])@(?!@)\w+": "Contains @ variables (should be parameters or PL/pgSQL variables)",
    r"CREATE\s+OR\s+ALTER\b|\bCREATE\s+PROC\b": "Contains T-SQL CREATE OR ALTER / CREATE PROC",
    r"SET\s+NOCOUNT": "Contains SET NOCOUNT",
    r"GETDATE\s*\(\s*\)": "Contains GETDATE() (should be CURRENT_TIMESTAMP)",
    r"\[[A-Za-z_]\w*\]": "Contains [bracketed] identifiers",
    r"\bIDENTITY\s*\(\s*\d+\s*,\s*\d+\s*\)": "Contains IDENTITY(seed, increment)",
}


def find_tsql_remnants(sql):
    """Heuristic review notes for T-SQL left in converted output"""
    issues = []
    for pattern, message in TSQL_REMNANTS.items():
        if re.search(pattern, sql, re.IGNORECASE | re.MULTILINE):
            issues.append(message)
    return issues
