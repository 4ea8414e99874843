"""Render a stored Resume row into a LaTeX document and then a PDF."""
import logging
import re
from typing import Any

from jobtracker.core.errors import RenderError
from jobtracker.models.resume import Resume
from jobtracker.services.latex_render_service import render_latex_to_pdf_bytes

logger = logging.getLogger(__name__)

FONT_SIZES = {"small": "10pt", "medium": "11pt", "large": "12pt"}
ACCENT_COLORS = {
    "classic": "000000",
    "modern": "1F4E79",
    "creative": "7B2D8E",
    "minimal": "333333",
    "professional": "0B3D2E",
}

LATEX_PREAMBLE = r"""\documentclass[letterpaper,%(font_size)s]{article}

\usepackage[empty]{fullpage}
\usepackage{titlesec}
\usepackage{enumitem}
\usepackage[hidelinks]{hyperref}
\usepackage{fancyhdr}
\usepackage[english]{babel}
\usepackage{tabularx}
\usepackage[table]{xcolor}
\input{glyphtounicode}

\definecolor{accent}{HTML}{%(accent)s}
\pagestyle{fancy}
\fancyhf{}
\renewcommand{\headrulewidth}{0pt}
\renewcommand{\footrulewidth}{0pt}

\addtolength{\oddsidemargin}{-0.5in}
\addtolength{\textwidth}{1in}
\addtolength{\topmargin}{-.7in}
\addtolength{\textheight}{1.0in}

\raggedbottom
\raggedright
\setlength{\tabcolsep}{0in}
\pdfgentounicode=1

\titleformat{\section}
  {\color{accent}\scshape\raggedright\large}
  {}
  {0em}
  {}
  [\color{accent}\titlerule]
\titlespacing{\section}{0pt}{4pt}{4pt}

\newcommand{\resumeItem}[1]{\item \small{#1}}
\newcommand{\resumeSubheading}[4]{
  \item
  \begin{tabularx}{0.97\textwidth}[t]{Xr}
    \textbf{#1} & #2 \\
    \textit{\small #3} & \textit{\small #4} \\
  \end{tabularx}\vspace{-2pt}
}
\newcommand{\resumeListStart}{\begin{itemize}[leftmargin=0.15in, label=\textbullet, itemsep=2pt]}
\newcommand{\resumeListEnd}{\end{itemize}}
\newcommand{\resumeHeadingStart}{\begin{itemize}[leftmargin=0in, label={}]}
\newcommand{\resumeHeadingEnd}{\end{itemize}}
"""


def _latex_escape(text: Any) -> str:
    s = str(text or "")
    repl = {
        "\\": r"\textbackslash{}",
        "&": r"\&",
        "%": r"\%",
        "$": r"\$",
        "#": r"\#",
        "_": r"\_",
        "{": r"\{",
        "}": r"\}",
        "~": r"\textasciitilde{}",
        "^": r"\textasciicircum{}",
    }
    s = "".join(repl.get(ch, ch) for ch in s)
    return re.sub(r"\s{2,}", " ", s).strip()


def _format_latex_text(text: Any) -> str:
    s = re.sub(r"\s+", " ", str(text or "")).strip()
    s = re.sub(r"^\s*(?:[-*•‣◦▪▸–—]+|\d+[.)])\s+", "", s)
    s = re.sub(r"\*\*(.+?)\*\*", r"BOLDOPEN\1BOLDCLOSE", s)
    s = _latex_escape(s)
    return s.replace("BOLDOPEN", r"\textbf{").replace("BOLDCLOSE", "}")


def _date_range(entry: dict) -> str:
    start = str(entry.get("start_date") or "")[:7]
    end = "Present" if entry.get("is_current") else str(entry.get("end_date") or "")[:7]
    return _latex_escape(" -- ".join(p for p in (start, end) if p))


def _bullets(items: Any, limit: int = 5) -> str:
    lines = [_format_latex_text(i) for i in (items or []) if str(i or "").strip()][:limit]
    if not lines:
        return ""
    body = "\n".join(rf"  \resumeItem{{{line}}}" for line in lines)
    return f"\\resumeListStart\n{body}\n\\resumeListEnd"


def _header(info: dict) -> str:
    name = _format_latex_text(f"{info.get('first_name') or ''} {info.get('last_name') or ''}".strip() or "Candidate")
    parts = []
    if info.get("phone"):
        parts.append(_latex_escape(info["phone"]))
    if info.get("email"):
        email = _latex_escape(info["email"])
        parts.append(rf"\href{{mailto:{email}}}{{{email}}}")
    for key, label in (("linkedin", "LinkedIn"), ("github", "GitHub"), ("portfolio", "Portfolio")):
        if info.get(key):
            parts.append(rf"\href{{{_latex_escape(info[key])}}}{{{label}}}")
    contact = " $|$ ".join(parts)
    return rf"""\begin{{center}}
  {{\Huge \scshape {name}}} \\ \vspace{{2pt}}
  \small {contact}
\end{{center}}"""


def _section(title: str, body: str) -> str:
    return rf"\section{{{title}}}" + "\n" + body if body.strip() else ""


def _experience_block(entries: list[dict]) -> str:
    blocks = []
    for e in entries:
        blocks.append(
            rf"""\resumeSubheading
  {{{_format_latex_text(e.get('job_title') or 'Role')}}}{{{_date_range(e)}}}
  {{{_format_latex_text(e.get('company') or '')}}}{{{_format_latex_text(e.get('location') or '')}}}
{_bullets(e.get('achievements') or ([e['description']] if e.get('description') else []))}"""
        )
    return "\\resumeHeadingStart\n" + "\n".join(blocks) + "\n\\resumeHeadingEnd" if blocks else ""


def _education_block(entries: list[dict]) -> str:
    blocks = []
    for e in entries:
        degree = " in ".join(p for p in (e.get("degree"), e.get("field_of_study")) if p)
        blocks.append(
            rf"""\resumeSubheading
  {{{_format_latex_text(degree or 'Degree')}}}{{{_date_range(e)}}}
  {{{_format_latex_text(e.get('institution') or '')}}}{{{_format_latex_text(e.get('gpa') or '')}}}"""
        )
    return "\\resumeHeadingStart\n" + "\n".join(blocks) + "\n\\resumeHeadingEnd" if blocks else ""


def _projects_block(entries: list[dict]) -> str:
    items = []
    for p in entries:
        tech = ", ".join(p.get("technologies") or [])
        line = rf"\textbf{{{_format_latex_text(p.get('name') or 'Project')}}}"
        if tech:
            line += rf" $|$ \emph{{{_latex_escape(tech)}}}"
        if p.get("description"):
            line += ": " + _format_latex_text(p["description"])
        items.append(line)
    return _bullets_raw(items)


def _bullets_raw(lines: list[str]) -> str:
    if not lines:
        return ""
    body = "\n".join(rf"  \resumeItem{{{line}}}" for line in lines)
    return f"\\resumeListStart\n{body}\n\\resumeListEnd"


def _skills_block(skills: dict) -> str:
    lines = []
    for category in skills.get("technical") or []:
        names = ", ".join(str(i.get("name")) for i in category.get("items") or [] if i.get("name"))
        if names:
            lines.append(rf"\textbf{{{_format_latex_text(category.get('category') or 'Technical')}}}: {_latex_escape(names)}")
    if skills.get("soft"):
        lines.append(rf"\textbf{{Soft skills}}: {_latex_escape(', '.join(skills['soft']))}")
    languages = [lang.get("language") if isinstance(lang, dict) else lang for lang in skills.get("languages") or []]
    if languages:
        lines.append(rf"\textbf{{Languages}}: {_latex_escape(', '.join(str(lang) for lang in languages if lang))}")
    return _bullets_raw(lines)


def _named_list(entries: list[dict], name_key: str, detail_keys: tuple[str, ...]) -> str:
    lines = []
    for entry in entries:
        details = ", ".join(_format_latex_text(entry.get(k)) for k in detail_keys if entry.get(k))
        line = rf"\textbf{{{_format_latex_text(entry.get(name_key) or '')}}}"
        lines.append(f"{line} -- {details}" if details else line)
    return _bullets_raw(lines)


def render_resume_latex(resume: Resume, options: dict | None = None) -> str:
    options = options or {}
    settings = resume.settings or {}
    theme = options.get("theme") or settings.get("theme") or "classic"
    font_size = FONT_SIZES.get(options.get("font_size") or settings.get("font_size") or "medium", "11pt")
    include = set(options.get("sections") or [])

    def wanted(name: str) -> bool:
        return not include or name in include

    parts = [_header(resume.personal_info or {})]
    if wanted("summary") and resume.summary:
        parts.append(_section("Summary", _format_latex_text(resume.summary)))
    if wanted("experience"):
        parts.append(_section("Experience", _experience_block(resume.experience or [])))
    if wanted("education"):
        parts.append(_section("Education", _education_block(resume.education or [])))
    if wanted("projects"):
        parts.append(_section("Projects", _projects_block(resume.projects or [])))
    if wanted("skills"):
        parts.append(_section("Skills", _skills_block(resume.skills or {})))
    if wanted("certifications"):
        parts.append(_section("Certifications", _named_list(resume.certifications or [], "name", ("issuer",))))
    if wanted("awards"):
        parts.append(_section("Awards", _named_list(resume.awards or [], "title", ("issuer", "description"))))
    if wanted("publications"):
        parts.append(_section("Publications", _named_list(resume.publications or [], "title", ("publisher",))))
    if wanted("volunteer_experience"):
        parts.append(
            _section("Volunteer Experience", _named_list(resume.volunteer_experience or [], "role", ("organization",)))
        )
    for extra in resume.additional_sections or []:
        if wanted("additional_sections") and extra.get("title"):
            parts.append(_section(_format_latex_text(extra["title"]), _format_latex_text(extra.get("content") or "")))

    preamble = LATEX_PREAMBLE % {"font_size": font_size, "accent": ACCENT_COLORS.get(theme, "000000")}
    body = "\n\n".join(p for p in parts if p)
    return f"{preamble}\n\\begin{{document}}\n\n{body}\n\n\\end{{document}}\n"


def render_resume_pdf(resume: Resume, options: dict | None = None) -> bytes:
    """Resume -> PDF bytes. Raises RenderError on any rendering failure."""
    try:
        latex = render_resume_latex(resume, options)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Resume %s could not be converted to LaTeX: %s", resume.id, e)
        raise RenderError("Resume content could not be rendered") from e
    return render_latex_to_pdf_bytes(latex)
