import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from jobtracker.core.errors import RenderError

logger = logging.getLogger(__name__)
PDFLATEX_TIMEOUT_SECONDS = 45


def _resolve_pdflatex_binary() -> str | None:
    binary = shutil.which("pdflatex")
    if binary:
        return binary
    # Fallbacks for macOS installations where the server process PATH is stale.
    candidates = [
        "/Library/TeX/texbin/pdflatex",
        "/usr/texbin/pdflatex",
    ]
    for candidate in candidates:
        if Path(candidate).exists():
            return candidate
    return None


def render_latex_to_pdf_bytes(latex: str) -> bytes:
    """
    Compile LaTeX into PDF bytes using local pdflatex.
    Raises RenderError if pdflatex is unavailable or compilation fails.
    """
    pdflatex_bin = _resolve_pdflatex_binary()
    if not pdflatex_bin:
        raise RenderError("pdflatex is not installed on the server")

    with tempfile.TemporaryDirectory(prefix="resume_render_") as tmpdir:
        tmp = Path(tmpdir)
        tex_path = tmp / "resume.tex"
        pdf_path = tmp / "resume.pdf"
        log_path = tmp / "resume.log"
        # The preamble references glyphtounicode; some TeX distributions do not ship it.
        (tmp / "glyphtounicode.tex").write_text("\\pdfgentounicode=1\n", encoding="utf-8")
        tex_path.write_text(latex or "", encoding="utf-8")

        cmd = [
            pdflatex_bin,
            "-interaction=nonstopmode",
            "-halt-on-error",
            "-output-directory",
            str(tmp),
            str(tex_path),
        ]
        env = os.environ.copy()
        env["PATH"] = f"{Path(pdflatex_bin).parent}:{env.get('PATH', '')}"
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(tmp),
                capture_output=True,
                text=True,
                timeout=PDFLATEX_TIMEOUT_SECONDS,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise RenderError("PDF rendering timed out") from e

        if proc.returncode != 0 or not pdf_path.exists():
            detail = ""
            if log_path.exists():
                detail = log_path.read_text(encoding="utf-8", errors="ignore")[-2000:]
            elif proc.stderr:
                detail = proc.stderr[-2000:]
            elif proc.stdout:
                detail = proc.stdout[-2000:]
            logger.warning("pdflatex failed rc=%s: %s", proc.returncode, detail[-500:])
            raise RenderError("PDF rendering failed")

        return pdf_path.read_bytes()
