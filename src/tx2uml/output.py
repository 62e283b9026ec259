"""
Diagram output.

Writes PlantUML text as-is, or renders it to PNG or SVG by piping it
through the PlantUML command line tool.
"""

import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from .utils.exceptions import RenderError
from .utils.logging import get_logger

logger = get_logger("output")

STDOUT = "-"


def default_output_file(tx_hash: str, output_format: str) -> str:
    return f"{tx_hash}.{output_format}"


def render_plantuml(plantuml: str, output_format: str, plantuml_path: str = "plantuml") -> bytes:
    """
    Render PlantUML text with ``plantuml -pipe``.

    Raises:
        RenderError: If PlantUML is not installed or fails
    """
    if shutil.which(plantuml_path) is None:
        raise RenderError(
            f"PlantUML not found at '{plantuml_path}'. Install it, set PLANTUML_PATH, "
            f"or use --output-format puml"
        )
    cmd = [plantuml_path, "-pipe", f"-t{output_format}", "-charset", "UTF-8"]
    logger.debug(f"Running {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, input=plantuml.encode("utf-8"), capture_output=True)
    except OSError as e:
        raise RenderError(f"Failed to run PlantUML: {e}") from e
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise RenderError(f"PlantUML failed with exit code {result.returncode}:\n{stderr}")
    return result.stdout


def write_diagram(
    plantuml: str,
    output_file: Optional[str],
    output_format: str = "puml",
    plantuml_path: str = "plantuml",
) -> Optional[str]:
    """
    Write a diagram to a file, or to stdout when the file is ``-``.

    Returns:
        The written file name, None for stdout
    """
    if output_format == "puml":
        content = plantuml.encode("utf-8")
    else:
        content = render_plantuml(plantuml, output_format, plantuml_path)

    if output_file in (None, STDOUT):
        sys.stdout.buffer.write(content)
        sys.stdout.flush()
        return None

    try:
        Path(output_file).write_bytes(content)
    except OSError as e:
        raise RenderError(f"Failed to write diagram: {e}", filename=output_file) from e
    logger.info(f"Wrote {output_format} diagram to {output_file}")
    return output_file
