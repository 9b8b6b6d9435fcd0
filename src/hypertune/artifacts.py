from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import TuningResult

logger = logging.getLogger(__name__)

SCRIPT_FILENAME = "train_best_model.py"
PARAMS_FILENAME = "best_params.json"
SHAP_FILENAME = "shap_analysis.py"
LOG_FILENAME = "execution_log.txt"


def params_json(result: TuningResult) -> str:
    return json.dumps(result.best_params, indent=2)


def log_text(result: TuningResult) -> str:
    return "\n".join(f"> {line}" for line in result.execution_log) + "\n"


@dataclass(frozen=True)
class ArtifactPaths:
    script_path: Path
    params_path: Path
    log_path: Path
    shap_path: Optional[Path] = None


def write_artifacts(result: TuningResult, out_dir: Path, *, shap_script: Optional[str] = None) -> ArtifactPaths:
    """
    Write the downloadable artifacts of one run into `out_dir`.

    The same files the results view offers for download, plus the execution log.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    script_path = out_dir / SCRIPT_FILENAME
    script_path.write_text(result.python_script, encoding="utf-8")
    params_path = out_dir / PARAMS_FILENAME
    params_path.write_text(params_json(result), encoding="utf-8")
    log_path = out_dir / LOG_FILENAME
    log_path.write_text(log_text(result), encoding="utf-8")

    shap_path = None
    if shap_script:
        shap_path = out_dir / SHAP_FILENAME
        shap_path.write_text(shap_script, encoding="utf-8")

    logger.info("Wrote artifacts to %s", out_dir)
    return ArtifactPaths(script_path=script_path, params_path=params_path, log_path=log_path, shap_path=shap_path)
