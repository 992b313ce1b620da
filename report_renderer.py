"""
Guidance Rx | Report Renderer (Code Only)
===========================================
Converts a weekly prescription record -> Markdown report.
No LLM calls. Optional .docx conversion with python-docx.
"""

import os
from datetime import datetime

from docx import Document as DocxDocument
from docx.shared import Pt

from config import REPORTS_PATH


def render_report(record: dict, output_dir: str = REPORTS_PATH) -> str:
    """
    Render a single weekly prescription to Markdown.
    Returns the filepath of the generated report.
    """
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M")

    lines = []
    lines.append(_header(record))
    lines.append(_issue(record))
    lines.append(_assessment(record.get("solution", {})))
    lines.append(_solutions(record.get("solution", {})))
    lines.append(_quick_wins(record.get("solution", {})))
    lines.append(_footer(timestamp))
    md = "\n".join(lines)

    filename = f"WEEK_{record.get('weekKey', 'unknown')}.md"
    filepath = os.path.join(output_dir, filename)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(md)

    return filepath


def render_docx(md_path: str) -> str:
    """Convert a Markdown report to a Word document. Returns the .docx path."""
    with open(md_path, "r", encoding="utf-8") as f:
        lines = f.readlines()

    doc = DocxDocument()

    for line in lines:
        line = line.rstrip("\n")

        if line.strip() == "---":
            continue

        if line.startswith("# "):
            doc.add_heading(line[2:].strip(), level=1)
        elif line.startswith("## "):
            doc.add_heading(line[3:].strip(), level=2)
        elif line.startswith("### "):
            doc.add_heading(line[4:].strip(), level=3)
        elif line.startswith("> "):
            run = doc.add_paragraph().add_run(line[2:].strip())
            run.italic = True
        elif line.startswith("|"):
            if set(line.replace("|", "").replace("-", "").strip()) == set():
                continue  # |---|---|
            cells = [c.strip() for c in line.split("|")[1:-1]]
            p = doc.add_paragraph("  |  ".join(cells))
            p.style = doc.styles["No Spacing"]
        elif line.startswith("- "):
            doc.add_paragraph(line[2:].replace("**", "").strip(), style="List Bullet")
        elif line[:1].isdigit() and ". " in line[:4]:
            doc.add_paragraph(line.split(". ", 1)[1].strip(), style="List Number")
        elif line.startswith("**"):
            run = doc.add_paragraph().add_run(line.replace("**", "").strip())
            run.bold = True
        elif line.startswith("*") and line.endswith("*"):
            run = doc.add_paragraph().add_run(line.strip("*").strip())
            run.italic = True
            run.font.size = Pt(9)
        elif line.strip() == "":
            doc.add_paragraph("")
        else:
            doc.add_paragraph(line)

    docx_path = md_path[:-3] + ".docx" if md_path.endswith(".md") else md_path + ".docx"
    doc.save(docx_path)
    return docx_path


# ==========================================================================
# Section Renderers
# ==========================================================================

def _header(record: dict) -> str:
    return (
        f"# Weekly AI Prescription: {record.get('weekKey', '?')}\n\n"
        f"**Created:** {record.get('timestamp', '?')} | "
        f"**By:** {record.get('createdBy') or 'unknown'} | "
        f"**Model:** {record.get('aiModel', '?')}\n\n"
        f"---\n"
    )


def _issue(record: dict) -> str:
    section = f"\n## Trending Issue\n\n> {record.get('issue', '')}\n"
    context = record.get("context") or {}
    if context:
        rows = "".join(f"| {k} | {v} |\n" for k, v in context.items())
        section += f"\n| Context | Value |\n|---------|-------|\n{rows}"
    return section


def _assessment(solution: dict) -> str:
    severity = str(solution.get("severity", "?")).upper()
    root_cause = solution.get("root_cause", "") or "Not provided"
    return (
        f"\n## Assessment\n\n"
        f"**Severity: {severity}**\n\n"
        f"{root_cause}\n"
    )


def _solutions(solution: dict) -> str:
    items = solution.get("solutions") or []
    if not items:
        return "\n## Recommended Solutions\n\nNone returned.\n"

    parts = ["\n## Recommended Solutions\n"]
    for idx, item in enumerate(items, start=1):
        parts.append(f"\n### {idx}. {item.get('title', 'Untitled')}\n")
        for n, step in enumerate(item.get("steps") or [], start=1):
            parts.append(f"{n}. {step}")
        if item.get("impact"):
            parts.append(f"\n**Impact:** {item['impact']}")
    return "\n".join(parts) + "\n"


def _quick_wins(solution: dict) -> str:
    wins = solution.get("quick_wins") or []
    if not wins:
        return ""
    bullets = "\n".join(f"- {w}" for w in wins)
    return f"\n## Quick Wins\n\n{bullets}\n"


def _footer(timestamp: str) -> str:
    return (
        f"\n---\n\n"
        f"*Rendered {timestamp} by Guidance Rx. AI suggestions require counselor review.*\n"
    )
