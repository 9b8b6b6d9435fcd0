from __future__ import annotations

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Optional

import typer

from .access import CodeRegistry, is_locked
from .artifacts import write_artifacts
from .config import Settings
from .configurator import ExperimentConfigurator
from .errors import ConfigError, HyperTuneError, IngestError, ValidationError
from .generation import GenerationCollaborator, OpenAICollaborator
from .ingest import preview_csv
from .log import configure_logging
from .models import ModelType, TuningMethod, TuningResult
from .pipeline import GenerationPipeline, PipelineOutcome, PipelineSnapshot
from .store import JsonFileSessionStore, read_usage
from .utils import MS_PER_DAY

app = typer.Typer(add_completion=False, help="HyperTune: LLM-assisted hyperparameter tuning scripts")

codes_app = typer.Typer(help="Manage access codes.")
app.add_typer(codes_app, name="codes")

DEFAULT_APP_PATH = Path(__file__).resolve().parents[2] / "app" / "app.py"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level")) -> None:
    configure_logging(verbose=verbose)


def load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)


def make_store(settings: Settings) -> JsonFileSessionStore:
    return JsonFileSessionStore(settings.state_path)


def make_collaborator(settings: Settings) -> GenerationCollaborator:
    return OpenAICollaborator.from_settings(settings)


# ---- Access codes ----


@codes_app.command("issue")
def issue_code(
    name: str = typer.Option(..., "--name", help="User the code is issued to"),
    days: float = typer.Option(1, "--days", help="Session duration granted by the code, in days"),
) -> None:
    """
    Mint a new access code and print it.
    """
    settings = load_settings()
    registry = CodeRegistry(make_store(settings), builtins=settings.builtin_codes)
    try:
        code = registry.issue_code(name, days)
    except ValidationError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)
    except Exception as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(code)


@codes_app.command("list")
def list_codes() -> None:
    """
    List issued codes with the session duration each one grants.
    """
    settings = load_settings()
    registry = CodeRegistry(make_store(settings), builtins=settings.builtin_codes)
    durations = registry.durations()
    issued = registry.issued_codes()
    if not issued:
        typer.echo("No issued codes.")
        return
    for code in issued:
        ms = durations.get(code, settings.session_duration_ms)
        typer.echo(f"{code}\t{ms / MS_PER_DAY:g} day(s)")


@app.command()
def usage() -> None:
    """
    Show the trial counter and whether the access gate is active (without a session).
    """
    settings = load_settings()
    count = read_usage(make_store(settings))
    locked = is_locked(None, count, settings.free_trial_limit)
    typer.echo(f"Usage: {count}/{settings.free_trial_limit}")
    typer.echo(f"Locked: {'yes' if locked else 'no'}")


# ---- Datasets ----


@app.command()
def preview(data: Path = typer.Argument(..., help="Path to a CSV file")) -> None:
    """
    Show what the app would learn from a CSV: columns, row count and sample rows.
    """
    try:
        ds = preview_csv(data)
    except (FileNotFoundError, IngestError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)

    typer.echo(f"File: {ds.filename}")
    typer.echo(f"Columns ({len(ds.columns)}): {', '.join(ds.columns)}")
    typer.echo(f"Rows: {ds.row_count if ds.row_count_exact else 'unknown (large file)'}")
    typer.echo("")
    typer.echo(ds.to_frame().to_string(index=False))


@app.command()
def tune(
    data: Path = typer.Argument(..., help="Path to a CSV file"),
    target: Optional[str] = typer.Option(None, "--target", help="Target column (default: last column)"),
    model: ModelType = typer.Option(ModelType.RANDOM_FOREST, "--model", case_sensitive=False),
    method: TuningMethod = typer.Option(TuningMethod.BAYESIAN_OPTUNA, "--method", case_sensitive=False),
    preset: Optional[str] = typer.Option(None, "--preset", help="Preset name, e.g. Fast, Balanced, High Accuracy"),
    hyperparams: Optional[Path] = typer.Option(None, "--hyperparams", exists=True, help="File with a custom search space"),
    trials: Optional[str] = typer.Option(None, "--trials", help="Number of trials"),
    folds: Optional[str] = typer.Option(None, "--folds", help="Cross-validation folds"),
    shap: bool = typer.Option(False, "--shap/--no-shap", help="Also generate a SHAP analysis script"),
    out: Path = typer.Option(Path("hypertune_out"), "--out", help="Directory for the generated artifacts"),
) -> None:
    """
    Generate a tuning script for a CSV without the web UI.

    Streams the execution log and writes:
      train_best_model.py, best_params.json, execution_log.txt
    """
    settings = load_settings()
    try:
        ds = preview_csv(data)
        cfg = ExperimentConfigurator(ds, model_type=model, tuning_method=method)
        if preset:
            cfg.select_preset(preset)
        if hyperparams is not None:
            cfg.edit_hyperparams(hyperparams.read_text(encoding="utf-8"))
        if target:
            cfg.select_target(target)
        if trials is not None:
            cfg.set_n_trials(trials)
        if folds is not None:
            cfg.set_cv_folds(folds)
        config = cfg.build()
    except (FileNotFoundError, HyperTuneError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)

    collaborator = make_collaborator(settings)
    printed = 0

    def _stream(snap: PipelineSnapshot) -> None:
        nonlocal printed
        for line in snap.logs[printed:]:
            typer.echo(f"> {line}")
        printed = len(snap.logs)

    results: list[TuningResult] = []
    pipeline = GenerationPipeline.from_settings(collaborator, settings, on_update=_stream)

    async def _run() -> tuple[PipelineOutcome, Optional[str]]:
        done = await pipeline.run(ds, config, results.append)
        if shap and done == PipelineOutcome.COMPLETED:
            return done, await collaborator.generate_shap_script(ds, config)
        return done, None

    try:
        outcome, shap_script = asyncio.run(_run())
    except Exception as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)

    if outcome != PipelineOutcome.COMPLETED or not results:
        typer.echo(f"Tuning did not complete ({outcome.value}).", err=True)
        raise typer.Exit(code=1)

    result = results[0]
    paths = write_artifacts(result, out, shap_script=shap_script)

    typer.echo("")
    typer.echo(f"Best {result.metric}: {result.best_score}")
    typer.echo(f"Script: {paths.script_path}")
    typer.echo(f"Params: {paths.params_path}")
    typer.echo(f"Log: {paths.log_path}")
    if paths.shap_path:
        typer.echo(f"SHAP: {paths.shap_path}")


@app.command()
def serve(
    app_path: Path = typer.Option(DEFAULT_APP_PATH, "--app", help="Streamlit script to run"),
    port: Optional[int] = typer.Option(None, "--port"),
) -> None:
    """
    Launch the Streamlit UI.
    """
    if not app_path.exists():
        typer.echo(f"ERROR: Streamlit app not found: {app_path}", err=True)
        raise typer.Exit(code=2)
    cmd = [sys.executable, "-m", "streamlit", "run", str(app_path)]
    if port:
        cmd += ["--server.port", str(port)]
    raise typer.Exit(code=subprocess.call(cmd))
